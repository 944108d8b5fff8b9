"""Repository management commands: repos, addrepo, removerepo, renamerepo,
modifyrepo and refresh."""

from __future__ import annotations

import logging
from typing import List, Optional

from tqdm import tqdm

from ...atomic_io import atomic_write_text
from ...exitcodes import ExitCode
from ...repos import (
    REPO_TYPES,
    InvalidUrlError,
    RepoInfo,
    RepositoryError,
    looks_like_url,
    make_url,
    read_repo_file,
    render_repo_file,
    url_view,
)
from ..context import Session
from ..descriptors import CommandDescriptor, options
from ..getopt import flag, value
from ..outcome import DONE, CommandFailed, Completed, Outcome
from ..registry import Command
from ..table import Table
from .common import find_repo, too_few_arguments, too_many_arguments

logger = logging.getLogger(__name__)

MODIFY_INTENT = "modifying system repositories"
REFRESH_INTENT = "refreshing system repositories"

LIST_HELP = """\
repos (lr)

List all defined repositories.

  Command options:
-e, --export <FILE.repo>  Export all defined repositories as a single local .repo file
"""

ADD_HELP = f"""\
addrepo (ar) [options] <URI> <alias>

Add repository specified by URI to the system and assign the specified alias to it.

  Command options:
-r, --repo <FILE.repo>  Read the URL and alias from a file (even remote)
-t, --type <TYPE>       Type of repository ({', '.join(REPO_TYPES)})
-d, --disabled          Add the repository as disabled
-n, --no-refresh        Add the repository with auto-refresh disabled
"""

REMOVE_HELP = """\
removerepo (rr) [options] <alias|URL>

Remove repository specified by alias or URL.

  Command options:
    --loose-auth   Ignore user authentication data in the URL
    --loose-query  Ignore query string in the URL
"""

RENAME_HELP = """\
renamerepo (nr) [options] <alias> <new-alias>

Assign new alias to the repository specified by alias.

This command has no additional options.
"""

MODIFY_HELP = """\
modifyrepo (mr) <options> <alias>

Modify properties of the repository specified by alias.

  Command options:
-d, --disable             Disable the repository (but don't remove it)
-e, --enable              Enable a disabled repository
-a, --enable-autorefresh  Enable auto-refresh of the repository
    --disable-autorefresh Disable auto-refresh of the repository
"""

REFRESH_HELP = """\
refresh (ref) [alias|#] ...

Refresh repositories specified by their alias or number. If none are specified,
all enabled repositories will be refreshed.

  Command options:
-f, --force              Force a complete refresh
-b, --force-build        Force rebuild of the database
-d, --force-download     Force download of raw metadata
-B, --build-only         Only build the database, don't download metadata.
-D, --download-only      Only download raw metadata, don't build the database
-r, --repo <alias|#|URI> Refresh only specified repositories.
"""


def _yes_no(flag_value: bool) -> str:
    return "Yes" if flag_value else "No"


# ------------------------------------------------------------------- repos
def list_repos(session: Session) -> Outcome:
    out = session.out
    repos = session.manager.list_repositories()

    target = session.options.first("export")
    if target is not None:
        if not repos:
            out.info("No repositories defined.")
            return DONE
        try:
            atomic_write_text(target, render_repo_file(repos))
        except OSError as exc:
            return CommandFailed(ExitCode.ZYPP_ERROR, f"Cannot export repositories to {target}: {exc}")
        out.info(f"Repositories have been successfully exported to {target}.")
        return DONE

    if not repos:
        out.info(
            "No repositories defined. Use the "
            f"'{session.program()}addrepo' command to add one or more repositories."
        )
        return DONE

    header = ["#", "Alias", "Name", "Enabled", "Refresh"]
    if session.globals.verbosity > 0:
        header.append("URI")
    table = Table(header, style=session.globals.table_style)
    for number, repo in enumerate(repos, start=1):
        row = [number, repo.alias, repo.display_name, _yes_no(repo.enabled), _yes_no(repo.autorefresh)]
        if session.globals.verbosity > 0:
            row.append(repo.url)
        table.add(*row)
    out.info(str(table))
    return DONE


# ----------------------------------------------------------------- addrepo
def _announce_added(session: Session, repo: RepoInfo) -> None:
    out = session.out
    out.info(f"Repository '{repo.alias}' successfully added")
    out.info(f"Enabled: {_yes_no(repo.enabled)}")
    out.info(f"Autorefresh: {_yes_no(repo.autorefresh)}")
    out.info(f"URL: {repo.url}")


def _add_from_file(
    session: Session, location: str, enabled: Optional[bool], autorefresh: Optional[bool]
) -> Outcome:
    try:
        repos = read_repo_file(location)
    except (OSError, RepositoryError) as exc:
        return CommandFailed(ExitCode.ZYPP_ERROR, f"Problem accessing the file at the specified URI: {exc}")
    if not repos:
        return CommandFailed(ExitCode.INVALID_ARGS, f"No repositories found in {location}.")
    for repo in repos:
        if enabled is not None:
            repo.enabled = enabled
        if autorefresh is not None:
            repo.autorefresh = autorefresh
        try:
            session.manager.add_repository(repo)
        except RepositoryError as exc:
            return CommandFailed(ExitCode.ZYPP_ERROR, str(exc))
        _announce_added(session, repo)
    return DONE


def add_repo(session: Session) -> Outcome:
    args = session.arguments
    opts = session.options
    if len(args) > 2:
        return too_many_arguments(session)

    # None means the user did not say; new repositories default to on
    enabled = False if "disabled" in opts else None
    autorefresh = False if "no-refresh" in opts else None

    location = opts.first("repo")
    if location is not None:
        return _add_from_file(session, location, enabled, autorefresh)

    if len(args) < 2:
        return too_few_arguments(session, "Too few arguments. At least URL and alias are required.")

    try:
        url = make_url(args[0])
    except InvalidUrlError as exc:
        return CommandFailed(ExitCode.INVALID_ARGS, str(exc))

    repo_type = opts.first("type", "")
    if repo_type and repo_type not in REPO_TYPES:
        session.out.error(f"Specified type is not a valid repository type: {repo_type}")
        session.out.info(
            f"See '{session.program()}-h addrepo' to get a list of known repository types."
        )
        return CommandFailed(ExitCode.INVALID_ARGS)

    repo = RepoInfo(
        alias=args[1],
        base_urls=[url],
        name=args[1],
        type=repo_type,
        enabled=True if enabled is None else enabled,
        autorefresh=True if autorefresh is None else autorefresh,
        gpgcheck=not session.globals.no_gpg_checks,
    )
    try:
        session.manager.add_repository(repo)
    except RepositoryError as exc:
        return CommandFailed(ExitCode.ZYPP_ERROR, str(exc))
    _announce_added(session, repo)
    return DONE


# -------------------------------------------------------------- removerepo
def remove_repo(session: Session) -> Outcome:
    args = session.arguments
    out = session.out
    if not args:
        return too_few_arguments(session, "Required argument missing.", usage=True)
    if len(args) > 1:
        return too_many_arguments(session)

    manager = session.manager
    spec = args[0]
    repos = manager.list_repositories()
    by_alias = [repo for repo in repos if repo.alias == spec]

    if not by_alias:
        logger.info("repository %s not found by alias, trying by URL", spec)
        out.verbose("Repository not found by alias, trying delete by URL...")
        if looks_like_url(spec):
            with_auth = "loose-auth" not in session.options
            with_query = "loose-query" not in session.options
            wanted = url_view(spec, with_auth=with_auth, with_query=with_query)
            by_alias = [
                repo for repo in repos
                if any(
                    url_view(url, with_auth=with_auth, with_query=with_query) == wanted
                    for url in repo.base_urls
                )
            ]
        else:
            out.verbose("Given URL is invalid.")

    if not by_alias:
        out.error("Repository not found by given alias or URL.")
        return DONE

    for repo in by_alias:
        try:
            manager.remove_repository(repo.alias)
        except RepositoryError as exc:
            return CommandFailed(ExitCode.ZYPP_ERROR, str(exc))
        if repo in session.registered_repos:
            session.registered_repos.remove(repo)
        out.info(f"Repository '{repo.alias}' has been removed.")
    return DONE


# -------------------------------------------------------------- renamerepo
def rename_repo(session: Session) -> Outcome:
    args = session.arguments
    if len(args) < 2:
        return too_few_arguments(
            session, "Too few arguments. At least the alias and the new alias are required."
        )
    if len(args) > 2:
        return too_many_arguments(session)
    try:
        session.manager.rename_repository(args[0], args[1])
    except RepositoryError as exc:
        return CommandFailed(ExitCode.ZYPP_ERROR, str(exc))
    session.out.info(f"Repository '{args[0]}' renamed to '{args[1]}'.")
    return DONE


# -------------------------------------------------------------- modifyrepo
def _tristate(session: Session, on: str, off: str) -> Optional[bool]:
    opts = session.options
    if on in opts and off in opts:
        session.out.warning(f"Ignoring --{on} and --{off} given together.")
        return None
    if on in opts:
        return True
    if off in opts:
        return False
    return None


def modify_repo(session: Session) -> Outcome:
    args = session.arguments
    out = session.out
    if not args:
        return too_few_arguments(session, "Alias is a required argument.")
    if len(args) > 1:
        return too_many_arguments(session)

    alias = args[0]
    enabled = _tristate(session, "enable", "disable")
    autorefresh = _tristate(session, "enable-autorefresh", "disable-autorefresh")
    if enabled is None and autorefresh is None:
        out.info(f"Nothing to change for repository '{alias}'.")
        return DONE

    try:
        session.manager.modify_repository(alias, enabled=enabled, autorefresh=autorefresh)
    except RepositoryError as exc:
        return CommandFailed(ExitCode.ZYPP_ERROR, str(exc))
    if enabled is not None:
        state = "enabled" if enabled else "disabled"
        out.info(f"Repository '{alias}' has been successfully {state}.")
    if autorefresh is not None:
        state = "enabled" if autorefresh else "disabled"
        out.info(f"Autorefresh has been {state} for repository '{alias}'.")
    return DONE


# ----------------------------------------------------------------- refresh
def _refresh_targets(session: Session, repos: List[RepoInfo]) -> Optional[List[RepoInfo]]:
    wanted = [*session.arguments, *session.options.get("repo", [])]
    if not wanted:
        return [repo for repo in repos if repo.enabled]
    targets: List[RepoInfo] = []
    for spec in wanted:
        repo = find_repo(repos, spec)
        if repo is None:
            session.out.error(f"Repository '{spec}' not found by its alias or number.")
            return None
        if not repo.enabled:
            session.out.info(f"Skipping disabled repository '{repo.alias}'")
            continue
        targets.append(repo)
    return targets


def refresh_repos(session: Session) -> Outcome:
    out = session.out
    opts = session.options
    gopts = session.globals
    if gopts.no_refresh:
        out.always("The '--no-refresh' global option has no effect here.")

    build_only = "build-only" in opts
    download_only = "download-only" in opts
    if build_only and download_only:
        return CommandFailed(
            ExitCode.INVALID_ARGS, "Cannot use --build-only together with --download-only."
        )
    force = "force" in opts
    force_download = force or "force-download" in opts
    force_build = force or "force-build" in opts

    manager = session.manager
    targets = _refresh_targets(session, manager.list_repositories())
    if targets is None:
        return CommandFailed(ExitCode.INVALID_ARGS)
    if not targets:
        out.warning("There are no enabled repositories defined.")
        prog = session.program()
        out.info(f"Use '{prog}addrepo' or '{prog}modifyrepo' commands to add or enable repositories.")
        return DONE

    errors = 0
    quiet = gopts.verbosity < 0 or gopts.machine_readable
    for repo in tqdm(targets, desc="Refreshing", unit="repo", disable=quiet, leave=False):
        try:
            changed = manager.refresh_repository(
                repo, force=force_download, build_only=build_only, download_only=download_only
            )
            if force_build and not download_only and not force_download:
                changed = manager.refresh_repository(repo, force=True, build_only=True) or changed
        except RepositoryError as exc:
            errors += 1
            out.error(str(exc))
            out.warning(f"Skipping repository '{repo.alias}' because of the above error.")
            continue
        if changed:
            out.info(f"Repository '{repo.display_name}' has been refreshed.")
        else:
            out.info(f"Repository '{repo.display_name}' is up to date.")

    if errors:
        if errors == len(targets):
            return CommandFailed(ExitCode.ZYPP_ERROR, "Could not refresh the repositories because of errors.")
        return CommandFailed(
            ExitCode.ZYPP_ERROR,
            "Some of the repositories have not been refreshed because of an error.",
        )
    out.info("All repositories have been refreshed." if len(targets) > 1 else "Done.")
    return Completed()


DESCRIPTORS = (
    CommandDescriptor(
        Command.LIST_REPOS,
        options(value("export", "e")),
        LIST_HELP,
        list_repos,
        read_only=True,
    ),
    CommandDescriptor(
        Command.ADD_REPO,
        options(value("type", "t"), flag("disabled", "d"), flag("no-refresh", "n"), value("repo", "r")),
        ADD_HELP,
        add_repo,
        privilege_intent=MODIFY_INTENT,
        manages_repos=True,
    ),
    CommandDescriptor(
        Command.REMOVE_REPO,
        options(flag("loose-auth"), flag("loose-query")),
        REMOVE_HELP,
        remove_repo,
        privilege_intent=MODIFY_INTENT,
        manages_repos=True,
    ),
    CommandDescriptor(
        Command.RENAME_REPO,
        options(),
        RENAME_HELP,
        rename_repo,
        privilege_intent=MODIFY_INTENT,
        manages_repos=True,
    ),
    CommandDescriptor(
        Command.MODIFY_REPO,
        options(
            flag("disable", "d"),
            flag("enable", "e"),
            flag("enable-autorefresh", "a"),
            flag("disable-autorefresh"),
        ),
        MODIFY_HELP,
        modify_repo,
        privilege_intent=MODIFY_INTENT,
        manages_repos=True,
    ),
    CommandDescriptor(
        Command.REFRESH,
        options(
            flag("force", "f"),
            flag("force-build", "b"),
            flag("force-download", "d"),
            flag("build-only", "B"),
            flag("download-only", "D"),
            value("repo", "r"),
        ),
        REFRESH_HELP,
        refresh_repos,
        privilege_intent=REFRESH_INTENT,
        manages_repos=True,
    ),
)
