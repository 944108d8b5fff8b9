"""Helpers shared by the command bodies: argument checks, repos, solving."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Union

from ... import config
from ...exitcodes import ExitCode, exit_code_for_commit
from ...repos import RepoInfo, RepositoryError, looks_like_url, url_view
from ...services import (
    Resolvable,
    ResolvablePool,
    UnknownResolvableKind,
    parse_kind,
    version_key,
)
from ..context import Session
from ..help import report_too_many_arguments
from ..outcome import CommandFailed, Completed, Outcome

logger = logging.getLogger(__name__)

TYPES_HELP = "package, patch, pattern, product"


# ----------------------------------------------------------------- arguments
def too_few_arguments(session: Session, message: str, *, usage: bool = False) -> CommandFailed:
    session.out.error(message)
    if usage:
        session.out.info("Usage:")
    session.out.info(session.state.descriptor.help)
    return CommandFailed(ExitCode.INVALID_ARGS)


def too_many_arguments(session: Session) -> CommandFailed:
    report_too_many_arguments(session, session.state.descriptor.help)
    return CommandFailed(ExitCode.INVALID_ARGS)


def no_arguments_allowed(session: Session) -> Optional[CommandFailed]:
    if session.arguments:
        return too_many_arguments(session)
    return None


def resolvable_kind(session: Session, default: str) -> Union[str, CommandFailed]:
    """Return the ``--type`` value validated as a resolvable kind."""

    text = session.options.first("type", default)
    try:
        return parse_kind(text)
    except UnknownResolvableKind as exc:
        return CommandFailed(ExitCode.INVALID_ARGS, str(exc))


def default_update_kind(session: Session) -> str:
    return "package" if session.globals.is_rug_compatible else "patch"


def apply_common_flags(session: Session) -> None:
    """Honor the license and rug ``--no-confirm`` flags for this command only."""

    opts = session.options
    state = session.state
    if "auto-agree-with-licenses" in opts or "agree-to-third-party-licenses" in opts:
        state.license_auto_agree = True
    if "no-confirm" in opts:
        state.no_confirm = True
        session.apply_output_mode()


def best_effort(session: Session) -> bool:
    wanted = "best-effort" in session.options
    if wanted and session.globals.is_rug_compatible:
        session.out.error("Running as 'rug', can't do 'best-effort' approach to update.")
        return False
    return wanted


# -------------------------------------------------------------- repositories
def find_repo(repos: Sequence[RepoInfo], spec: str) -> Optional[RepoInfo]:
    """Look a repository up by alias, 1-based number or URL."""

    for repo in repos:
        if repo.alias == spec:
            return repo
    if spec.isdigit():
        number = int(spec)
        if 1 <= number <= len(repos):
            return repos[number - 1]
    if looks_like_url(spec):
        wanted = url_view(spec)
        for repo in repos:
            if any(url_view(url) == wanted for url in repo.base_urls):
                return repo
    return None


def register_additional_repos(session: Session) -> Optional[CommandFailed]:
    manager = session.manager
    for repo in session.additional_repos:
        if repo in session.registered_repos:
            continue
        try:
            manager.add_repository(repo, persistent=False)
        except RepositoryError as exc:
            return CommandFailed(ExitCode.ZYPP_ERROR, str(exc))
        session.registered_repos.append(repo)
        logger.debug("registered temporary repository %s", repo.alias)
    return None


def init_repos(session: Session) -> Union[List[RepoInfo], CommandFailed]:
    """Collect the repositories a command works with.

    Temporary ``--plus-repo`` repositories are registered with the backend
    first. ``--repo``/``--catalog`` narrow the set; enabled repositories with
    autorefresh are refreshed when running as root unless ``--no-refresh``.
    """

    failed = register_additional_repos(session)
    if failed is not None:
        return failed

    gopts = session.globals
    out = session.out
    if gopts.disable_system_sources:
        known = list(session.additional_repos)
    else:
        known = session.manager.list_repositories()

    wanted = [*session.options.get("repo", []), *session.options.get("catalog", [])]
    if wanted:
        repos: List[RepoInfo] = []
        for spec in wanted:
            repo = find_repo(known, spec)
            if repo is None:
                return CommandFailed(
                    ExitCode.INVALID_ARGS,
                    f"Repository '{spec}' not found by its alias, number, or URI.",
                )
            repos.append(repo)
        session.current_repo = repos[0]
    else:
        repos = [repo for repo in known if repo.enabled]

    if gopts.no_refresh or not session.is_root():
        return repos

    usable: List[RepoInfo] = []
    for repo in repos:
        if repo.autorefresh:
            try:
                session.manager.refresh_repository(repo)
            except RepositoryError as exc:
                out.error(str(exc))
                out.warning(f"Disabling repository '{repo.alias}' because of the above error.")
                continue
        usable.append(repo)
    return usable


def load_resolvables(
    session: Session, repos: Sequence[RepoInfo], *, include_installed: Optional[bool] = None
) -> ResolvablePool:
    if include_installed is None:
        include_installed = not session.globals.disable_system_resolvables
    return session.manager.load_resolvables(repos, include_installed=include_installed)


def prepare_pool(
    session: Session, *, include_installed: Optional[bool] = None
) -> Union[ResolvablePool, CommandFailed]:
    repos = init_repos(session)
    if isinstance(repos, CommandFailed):
        return repos
    return load_resolvables(session, repos, include_installed=include_installed)


# ------------------------------------------------------------------- updates
def find_updates(pool: ResolvablePool, kind: str) -> List[Resolvable]:
    """Needed patches, or the newest available version of installed items."""

    if kind == "patch":
        needed = [r for r in pool.available if r.kind == "patch" and not r.installed]
        return sorted(needed, key=lambda r: (r.name, version_key(r.version)))

    installed = {r.name: r for r in pool.installed if r.kind == kind}
    best: Dict[str, Resolvable] = {}
    for item in pool.available:
        current = installed.get(item.name)
        if item.kind != kind or current is None:
            continue
        if version_key(item.version) <= version_key(current.version):
            continue
        if item.name not in best or version_key(item.version) > version_key(best[item.name].version):
            best[item.name] = item
    return sorted(best.values(), key=lambda r: r.name)


# ------------------------------------------------------------------- commits
def write_solver_testcase(session: Session) -> Outcome:
    out = session.out
    out.info("Generating solver test case...")
    if session.manager.write_solver_testcase(config.SOLVER_TESTCASE_DIR):
        out.info("Solver test case generated successfully.")
        return Completed()
    return CommandFailed(ExitCode.ZYPP_ERROR, "Error creating the solver test case.")


def solve_and_commit(session: Session, *, dry_run: bool = False) -> Outcome:
    """Resolve the current selection, confirm with the user and commit it."""

    out = session.out
    manager = session.manager
    problems = manager.resolve()
    if problems:
        for problem in problems:
            out.error(f"Problem: {problem}")
        return CommandFailed(ExitCode.ZYPP_ERROR, "Dependency problems found, nothing done.")

    if not dry_run and not out.confirm("Continue?", default=True):
        out.info("Nothing done.")
        return Completed()

    result = manager.commit(dry_run=dry_run)
    if result.empty:
        out.info("Nothing to do.")
        return Completed()
    if dry_run:
        if result.installed:
            out.info("Would install: " + " ".join(result.installed))
        if result.removed:
            out.info("Would remove: " + " ".join(result.removed))
        return Completed()

    if result.installed:
        out.info("Installed: " + " ".join(result.installed))
    if result.removed:
        out.info("Removed: " + " ".join(result.removed))
    code = exit_code_for_commit(result)
    if code == ExitCode.REBOOT_NEEDED:
        out.warning("A system reboot is required to complete the transaction.")
    elif code == ExitCode.RESTART_NEEDED:
        out.warning("The package manager was updated; run it again to continue.")
    return Completed(code)


def clear_selections(session: Session) -> None:
    session.manager.clear_selections()


__all__ = [
    "TYPES_HELP",
    "apply_common_flags",
    "best_effort",
    "clear_selections",
    "default_update_kind",
    "find_repo",
    "find_updates",
    "init_repos",
    "load_resolvables",
    "no_arguments_allowed",
    "prepare_pool",
    "register_additional_repos",
    "resolvable_kind",
    "solve_and_commit",
    "too_few_arguments",
    "too_many_arguments",
    "write_solver_testcase",
]
