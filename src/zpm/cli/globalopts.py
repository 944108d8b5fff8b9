"""Parsing of the options that precede the command name."""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence

from .. import config
from ..exitcodes import ExitCode
from ..repos import InvalidUrlError, additional_repository
from .context import Session
from .descriptors import descriptor_for
from .getopt import flag, optional, parse_options, value
from .help import print_main_help, print_unknown_command_hint, report_too_many_arguments
from .outcome import ExitRequest
from .registry import Command, UnknownCommandError, resolve
from .table import TableStyle

logger = logging.getLogger(__name__)

GLOBAL_OPTIONS = (
    flag("help", "h"),
    flag("verbose", "v"),
    flag("quiet", "q"),
    flag("version", "V"),
    flag("terse", "t"),
    value("table-style", "s"),
    flag("rug-compatible", "r"),
    flag("non-interactive", "n"),
    flag("no-gpg-checks"),
    value("root", "R"),
    value("reposd-dir", "D"),
    value("cache-dir", "C"),
    value("raw-cache-dir"),
    optional("opt", "o"),
    flag("disable-system-resolvables"),
    value("plus-repo", "p"),
    flag("disable-repositories"),
    flag("no-refresh"),
)

HELP_TOKENS = ("-h", "--help")

SHELL_USAGE = """\
shell

Enter the interactive shell, reading commands one per line.
"""


def _initial_table_style() -> TableStyle:
    try:
        return TableStyle(config.DEFAULT_TABLE_STYLE)
    except ValueError:
        return TableStyle.ASCII


def _under_root(root: str, path: str) -> str:
    return root.rstrip("/") + path


def process_global_options(session: Session, argv: Sequence[str]) -> Optional[ExitRequest]:
    """Apply global options and resolve the command token.

    Returns an :class:`ExitRequest` when processing cannot continue; otherwise
    the session holds the command and ``session.state.argv`` its remaining
    tokens.
    """

    logger.debug("processing global options: %s", list(argv))
    gopts = parse_options(argv, GLOBAL_OPTIONS, stop_at_positional=True)
    g = session.globals
    state = session.state
    out = session.out
    g.table_style = _initial_table_style()

    if gopts.unknown:
        for message in gopts.errors:
            out.error(message)
        state.record(ExitCode.SYNTAX_ERROR)
        return ExitRequest(ExitCode.SYNTAX_ERROR, "unknown global option")

    if "rug-compatible" in gopts:
        g.is_rug_compatible = True
    if "help" in gopts:
        state.running_help = True

    # --quiet wins over any number of --verbose, whatever the order
    if "quiet" in gopts:
        g.verbosity = -1
        session.apply_output_mode()
    elif "verbose" in gopts:
        g.verbosity += gopts.count("verbose")
        session.apply_output_mode()
        out.always(f"Verbosity: {g.verbosity}")
    logger.debug("verbosity: %d", g.verbosity)

    if "non-interactive" in gopts:
        g.non_interactive = True
        session.apply_output_mode()
        out.info("Entering non-interactive mode.")

    if "no-gpg-checks" in gopts:
        g.no_gpg_checks = True
        out.info("Entering 'no-gpg-checks' mode.")

    style = gopts.first("table-style")
    if style is not None:
        try:
            g.table_style = TableStyle.parse(style)
        except ValueError:
            out.warning(f"Invalid table style {style}")

    root = gopts.first("root")
    if root is not None:
        if not os.path.isabs(root):
            out.error("The path specified in the --root option must be absolute.")
            state.record(ExitCode.INVALID_ARGS)
            return ExitRequest(ExitCode.INVALID_ARGS, "relative root")
        g.root_dir = root
        rm = g.rm_options
        rm.known_repos_path = _under_root(root, rm.known_repos_path)
        rm.repo_cache_path = _under_root(root, rm.repo_cache_path)
        rm.raw_cache_path = _under_root(root, rm.raw_cache_path)

    if "reposd-dir" in gopts:
        g.rm_options.known_repos_path = gopts.first("reposd-dir")
    if "cache-dir" in gopts:
        g.rm_options.repo_cache_path = gopts.first("cache-dir")
    if "raw-cache-dir" in gopts:
        g.rm_options.raw_cache_path = gopts.first("raw-cache-dir")
    logger.debug(
        "repos.d=%s cache=%s raw-cache=%s",
        g.rm_options.known_repos_path,
        g.rm_options.repo_cache_path,
        g.rm_options.raw_cache_path,
    )

    if "terse" in gopts:
        g.machine_readable = True
        session.apply_output_mode()
        out.open_envelope()

    if "disable-repositories" in gopts:
        out.info("Repositories disabled, using the database of installed packages only.")
        g.disable_system_sources = True
    else:
        logger.debug("repositories enabled")

    if "no-refresh" in gopts:
        g.no_refresh = True
        out.verbose("Autorefresh disabled.")

    if "disable-system-resolvables" in gopts:
        out.info("Ignoring installed resolvables.")
        g.disable_system_resolvables = True

    if "opt" in gopts:
        out.always("Opt arg: " + ", ".join(gopts["opt"]))

    rest: List[str] = list(argv[gopts.cursor:])
    if rest:
        token = rest.pop(0)
        try:
            state.command = resolve(token)
        except UnknownCommandError as exc:
            out.error(str(exc))
    elif "version" not in gopts:
        state.running_help = True

    if state.command is Command.HELP:
        state.running_help = True
        if not rest:
            print_main_help(session)
            return ExitRequest(None, "help provided")
        token = rest.pop(0)
        try:
            state.command = resolve(token)
        except UnknownCommandError as exc:
            if token and token not in HELP_TOKENS:
                out.always(str(exc))
                print_unknown_command_hint(session)
                return ExitRequest(None, "help for an unknown command")
    elif state.command is Command.NONE:
        if state.running_help:
            print_main_help(session)
        elif "version" in gopts:
            out.always(f"{config.PACKAGE_NAME} {config.VERSION}")
        else:
            print_unknown_command_hint(session)
            state.record(ExitCode.SYNTAX_ERROR)
    elif state.command is Command.SHELL and rest:
        token = rest.pop(0)
        if token in HELP_TOKENS:
            state.running_help = True
        elif token:
            report_too_many_arguments(session, SHELL_USAGE)
            state.record(ExitCode.INVALID_ARGS)
            return ExitRequest(ExitCode.INVALID_ARGS, "shell takes no arguments")

    if "plus-repo" in gopts:
        descriptor = descriptor_for(state.command)
        if descriptor is not None and descriptor.manages_repos:
            out.warning("The --plus-repo option has no effect here, ignoring.")
        else:
            for count, url in enumerate(gopts["plus-repo"], start=1):
                try:
                    repo = additional_repository(url, count)
                except InvalidUrlError as exc:
                    out.error(str(exc))
                    state.record(ExitCode.INVALID_ARGS)
                    return ExitRequest(ExitCode.INVALID_ARGS, "invalid --plus-repo URL")
                logger.debug("additional repository %s: %s", repo.alias, repo.url)
                session.additional_repos.append(repo)

    state.argv = rest
    logger.debug("global options processed, command %s", state.command.value)
    return None


__all__ = ["GLOBAL_OPTIONS", "process_global_options"]
