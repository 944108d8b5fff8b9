"""Usage texts and the hints printed around unknown commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .context import Session

BUG_HINT = (
    "Please file a bug report about this.\n"
    "See the project's issue tracker for instructions on how to report bugs."
)

GLOBAL_OPTIONS_HELP = """\
  Global Options:
\t--help, -h\t\tHelp.
\t--version, -V\t\tOutput the version number.
\t--quiet, -q\t\tSuppress normal output, print only error messages.
\t--verbose, -v\t\tIncrease verbosity.
\t--terse, -t\t\tTerse output for machine consumption.
\t--table-style, -s\tTable style (integer).
\t--rug-compatible, -r\tTurn on rug compatibility.
\t--non-interactive, -n\tDon't ask anything, use default answers automatically.
\t--reposd-dir, -D <dir>\tUse alternative repository definition files directory.
\t--cache-dir, -C <dir>\tUse alternative meta-data cache database directory.
\t--raw-cache-dir <dir>\tUse alternative raw meta-data cache directory.
"""

REPO_OPTIONS_HELP = """\
\tRepository Options:
\t--no-gpg-checks\t\tIgnore GPG check failures and continue.
\t--plus-repo, -p <URI>\tUse an additional repository.
\t--disable-repositories\tDo not read meta-data from repositories.
\t--no-refresh\t\tDo not refresh the repositories.
"""

TARGET_OPTIONS_HELP = """\
\tTarget Options:
\t--root, -R <dir>\tOperate on a different root directory.
\t--disable-system-resolvables  Do not read installed resolvables.
"""

COMMANDS_HELP = """\
  Commands:
\thelp, ?\t\t\tHelp
\tshell, sh\t\tAccept multiple commands at once
\tinstall, in\t\tInstall packages or resolvables
\tremove, rm\t\tRemove packages or resolvables
\tsearch, se\t\tSearch for packages matching a pattern
\trepos, lr\t\tList all defined repositories.
\taddrepo, ar\t\tAdd a new repository
\tremoverepo, rr\t\tRemove specified repository
\trenamerepo, nr\t\tRename specified repository
\tmodifyrepo, mr\t\tModify specified repository
\trefresh, ref\t\tRefresh all repositories
\tpatch-check, pchk\tCheck for patches
\tpatches, pch\t\tList patches
\tlist-updates, lu\tList updates
\txml-updates, xu\t\tList updates and patches in xml format
\tupdate, up\t\tUpdate installed resolvables with newer versions.
\tdist-upgrade, dup\tPerform a distribution upgrade
\tinfo, if\t\tShow full information for packages
\tpatch-info\t\tShow full information for patches
\tsource-install, si\tInstall a source package
"""

USAGE_HELP = """\
  Usage:
\t{prog} [--global-options] <command> [--command-options] [arguments]
"""


def main_help_text(prog: str) -> str:
    return "\n".join(
        [
            USAGE_HELP.format(prog=prog),
            GLOBAL_OPTIONS_HELP,
            REPO_OPTIONS_HELP,
            TARGET_OPTIONS_HELP,
            COMMANDS_HELP,
        ]
    )


def print_main_help(session: "Session") -> None:
    session.out.always(main_help_text(session.argv0))
    print_command_help_hint(session)


def print_unknown_command_hint(session: "Session") -> None:
    session.out.always(
        f"Type '{session.program()}help' to get a list of global options and commands."
    )


def print_command_help_hint(session: "Session") -> None:
    session.out.always(
        f"Type '{session.program()}help <command>' to get a command-specific help."
    )


def report_too_many_arguments(session: "Session", help_text: str) -> None:
    session.out.error("Too many arguments.")
    session.out.info(help_text)


def report_a_bug(session: "Session") -> None:
    session.out.error(BUG_HINT)


__all__ = [
    "BUG_HINT",
    "main_help_text",
    "print_command_help_hint",
    "print_main_help",
    "print_unknown_command_hint",
    "report_a_bug",
    "report_too_many_arguments",
]
