"""Commands that change installed resolvables: install, remove,
source-install, update and dist-upgrade."""

from __future__ import annotations

import logging

from ...exitcodes import ExitCode
from ...services import ResolvablePool
from ..context import Session
from ..descriptors import CommandDescriptor, options
from ..getopt import flag, value
from ..outcome import CommandFailed, Outcome
from ..registry import Command
from .common import (
    TYPES_HELP,
    apply_common_flags,
    best_effort,
    clear_selections,
    default_update_kind,
    find_updates,
    init_repos,
    load_resolvables,
    no_arguments_allowed,
    prepare_pool,
    resolvable_kind,
    solve_and_commit,
    too_few_arguments,
    write_solver_testcase,
)

logger = logging.getLogger(__name__)

INSTALL_REMOVE_INTENT = "installing or uninstalling packages"
UPDATE_INTENT = "updating packages"
DIST_UPGRADE_INTENT = "performing a distribution upgrade"

INSTALL_HELP = f"""\
install (in) [options] <capability> ...

Install resolvables with specified capabilities. A capability is
NAME[OP<VERSION>], where OP is one of <, <=, =, >=, >.

  Command options:
-r, --repo <alias|#|URI>        Install resolvables only from repository specified by alias.
-t, --type <type>               Type of resolvable ({TYPES_HELP})
                                Default: package
-n, --name                      Select resolvables by plain name, not by capability
-C, --capability                Select resolvables by capability
-f, --force                     Install even if the item is already installed (reinstall)
-l, --auto-agree-with-licenses  Automatically say 'yes' to third party license confirmation prompt.
    --debug-solver              Create solver test case for debugging
-R, --force-resolution <on|off> Force the solver to find a solution (even aggressive)
-D, --dry-run                   Test the installation, do not actually install
"""

REMOVE_HELP = f"""\
remove (rm) [options] <capability> ...

Remove resolvables with specified capabilities. A capability is
NAME[OP<VERSION>], where OP is one of <, <=, =, >=, >.

  Command options:
-r, --repo <alias|#|URI>        Operate only with resolvables from repository specified by alias.
-t, --type <type>               Type of resolvable ({TYPES_HELP})
                                Default: package
-n, --name                      Select resolvables by plain name, not by capability
-C, --capability                Select resolvables by capability
    --debug-solver              Create solver test case for debugging
-R, --force-resolution <on|off> Force the solver to find a solution (even aggressive)
-D, --dry-run                   Test the removal, do not actually remove
"""

SRC_INSTALL_HELP = """\
source-install (si) <name> ...

Install source packages specified by their names.

This command has no additional options.
"""

UPDATE_HELP = f"""\
update (up) [options]

Update all installed resolvables with newer versions, where applicable.

  Command options:

-t, --type <type>               Type of resolvable ({TYPES_HELP})
                                Default: patch
-r, --repo <alias|#|URI>        Limit updates to the repository specified by the alias.
    --skip-interactive          Skip interactive updates
-l, --auto-agree-with-licenses  Automatically say 'yes' to third party license confirmation prompt.
    --best-effort               Do a 'best effort' approach to update, updates to a lower than
                                latest-and-greatest version are also acceptable
    --debug-solver              Create solver test case for debugging
-R, --force-resolution <on|off> Force the solver to find a solution (even aggressive)
-D, --dry-run                   Test the update, do not actually update
"""

DIST_UPGRADE_HELP = """\
dist-upgrade (dup) [options]

Perform a distribution upgrade.

  Command options:

-r, --repo <alias|#|URI>        Limit the upgrade to the repository specified by the alias.
-l, --auto-agree-with-licenses  Automatically say 'yes' to third party license confirmation prompt.
    --debug-solver              Create solver test case for debugging
-D, --dry-run                   Test the upgrade, do not actually upgrade
"""


def _finish(session: Session) -> Outcome:
    if "debug-solver" in session.options:
        return write_solver_testcase(session)
    return solve_and_commit(session, dry_run="dry-run" in session.options)


def install_remove(session: Session) -> Outcome:
    out = session.out
    install = session.command is Command.INSTALL
    if not session.arguments:
        return too_few_arguments(
            session, "Too few arguments. At least one package name is required."
        )

    apply_common_flags(session)
    kind = resolvable_kind(session, "package")
    if isinstance(kind, CommandFailed):
        return kind

    repos = init_repos(session)
    if isinstance(repos, CommandFailed):
        return repos
    if not repos:
        out.warning(
            "Warning: No repositories defined. Operating only with the installed "
            "resolvables. Nothing can be installed."
        )
    load_resolvables(session, repos)

    manager = session.manager
    by_capability = "capability" in session.options
    for name in session.arguments:
        if manager.mark(name, kind, install=install, by_capability=by_capability):
            logger.debug("marked %s %s for %s", kind, name, "installation" if install else "removal")
        elif install:
            out.error(f"{kind} '{name}' not found.")
        else:
            out.error(f"{kind} '{name}' is not installed.")
    return _finish(session)


def source_install(session: Session) -> Outcome:
    if not session.arguments:
        return CommandFailed(ExitCode.INVALID_ARGS, "Source package name is a required argument.")

    pool = prepare_pool(session, include_installed=False)
    if isinstance(pool, CommandFailed):
        return pool
    manager = session.manager
    missing = [
        name for name in session.arguments
        if not manager.mark(name, "srcpackage", install=True)
    ]
    for name in missing:
        session.out.error(f"Source package '{name}' not found.")
    if len(missing) == len(session.arguments):
        return CommandFailed(ExitCode.ZYPP_ERROR)
    return solve_and_commit(session)


def _mark_all(session: Session, pool: ResolvablePool, kind: str, *, skip_interactive: bool) -> int:
    marked = 0
    for item in find_updates(pool, kind):
        if skip_interactive and item.kind == "patch" and item.reboot_needed:
            session.out.verbose(f"Skipping interactive patch '{item.name}'.")
            continue
        if session.manager.mark(item.name, item.kind, install=True):
            marked += 1
    return marked


def update(session: Session) -> Outcome:
    failed = no_arguments_allowed(session)
    if failed is not None:
        return failed
    apply_common_flags(session)
    kind = resolvable_kind(session, default_update_kind(session))
    if isinstance(kind, CommandFailed):
        return kind
    best_effort(session)

    pool = prepare_pool(session)
    if isinstance(pool, CommandFailed):
        return pool
    skip_interactive = "skip-interactive" in session.options or session.non_interactive
    marked = _mark_all(session, pool, kind, skip_interactive=skip_interactive)
    logger.info("%d %s update(s) selected", marked, kind)
    return _finish(session)


def dist_upgrade(session: Session) -> Outcome:
    failed = no_arguments_allowed(session)
    if failed is not None:
        return failed
    apply_common_flags(session)

    pool = prepare_pool(session)
    if isinstance(pool, CommandFailed):
        return pool
    marked = 0
    for kind in ("package", "pattern", "product"):
        marked += _mark_all(session, pool, kind, skip_interactive=False)
    logger.info("%d resolvable(s) selected for the distribution upgrade", marked)
    return _finish(session)


_TRANSACTION_OPTIONS = (
    value("repo", "r"),
    value("catalog", "c"),
    value("type", "t"),
    flag("name", "n"),
    flag("capability", "C"),
    flag("no-confirm", "y"),
    flag("debug-solver"),
    value("force-resolution", "R"),
    flag("dry-run", "D"),
)

DESCRIPTORS = (
    CommandDescriptor(
        Command.INSTALL,
        options(
            *_TRANSACTION_OPTIONS,
            flag("force", "f"),
            flag("auto-agree-with-licenses", "l"),
            flag("agree-to-third-party-licenses"),
        ),
        INSTALL_HELP,
        install_remove,
        privilege_intent=INSTALL_REMOVE_INTENT,
        cleanup=clear_selections,
    ),
    CommandDescriptor(
        Command.REMOVE,
        options(*_TRANSACTION_OPTIONS),
        REMOVE_HELP,
        install_remove,
        privilege_intent=INSTALL_REMOVE_INTENT,
        cleanup=clear_selections,
    ),
    CommandDescriptor(
        Command.SRC_INSTALL,
        options(),
        SRC_INSTALL_HELP,
        source_install,
        privilege_intent=INSTALL_REMOVE_INTENT,
        cleanup=clear_selections,
    ),
    CommandDescriptor(
        Command.UPDATE,
        options(
            value("repo", "r"),
            value("catalog", "c"),
            value("type", "t"),
            flag("no-confirm", "y"),
            flag("skip-interactive"),
            flag("auto-agree-with-licenses", "l"),
            flag("agree-to-third-party-licenses"),
            flag("best-effort"),
            flag("debug-solver"),
            value("force-resolution", "R"),
            flag("dry-run", "D"),
        ),
        UPDATE_HELP,
        update,
        privilege_intent=UPDATE_INTENT,
        cleanup=clear_selections,
    ),
    CommandDescriptor(
        Command.DIST_UPGRADE,
        options(
            value("repo", "r"),
            flag("auto-agree-with-licenses", "l"),
            flag("debug-solver"),
            flag("dry-run", "D"),
        ),
        DIST_UPGRADE_HELP,
        dist_upgrade,
        privilege_intent=DIST_UPGRADE_INTENT,
        cleanup=clear_selections,
    ),
)
