"""Run one command: options, privilege check, lock, body and error trapping."""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Optional

from ..exitcodes import ExitCode, exit_code_for_exception
from ..locking import TransactionLockError
from ..privileges import RootPrivilegesRequired, require_root
from .context import Session
from .descriptors import CommandDescriptor, descriptor_for
from .getopt import parse_options
from .help import print_main_help, print_unknown_command_hint, report_a_bug
from .outcome import AbortRequested, CommandFailed, Completed, ExitRequest, Outcome
from .registry import Command, UnknownCommandError, resolve

logger = logging.getLogger(__name__)

LOCKED_MESSAGE = (
    "A package management transaction is already in progress. "
    "Close the other application using it and try again."
)


def _resolve_help_topic(session: Session) -> Optional[Outcome]:
    """Handle ``help <command>`` typed inside the shell."""

    state = session.state
    state.running_help = True
    if not state.argv:
        print_main_help(session)
        return ExitRequest(None, "help provided")
    token = state.argv.pop(0)
    try:
        state.command = resolve(token)
    except UnknownCommandError as exc:
        if token and token not in ("-h", "--help"):
            session.out.always(str(exc))
            print_unknown_command_hint(session)
            return ExitRequest(None, "help for an unknown command")
    return None


def process_command_options(session: Session) -> Optional[Outcome]:
    """Parse the command's own options into the session.

    Returns ``None`` when the command should run (or its help be shown) and an
    outcome when processing has to stop here.
    """

    state = session.state
    out = session.out
    if state.command is Command.HELP and state.running_shell:
        stop = _resolve_help_topic(session)
        if stop is not None:
            return stop

    descriptor = descriptor_for(state.command)
    if descriptor is None:
        if state.command is Command.NONE:
            return ExitRequest(None, "no command")
        out.error("Unexpected program flow.")
        report_a_bug(session)
        return CommandFailed(ExitCode.BUG)
    state.descriptor = descriptor
    if state.running_help:
        return None

    logger.debug("parsing options of %s: %s", state.command.value, state.argv)
    parsed = parse_options(state.argv, descriptor.options)
    if parsed.unknown:
        for message in parsed.errors:
            out.error(message)
        return CommandFailed(ExitCode.SYNTAX_ERROR)
    state.options = parsed
    if "help" in parsed:
        state.running_help = True
    state.arguments = list(parsed.arguments)
    if state.arguments:
        out.verbose("Non-option program arguments: " + " ".join(state.arguments))
    return None


def _run_body(session: Session, descriptor: CommandDescriptor) -> Optional[Outcome]:
    if descriptor.requires_root:
        try:
            require_root(descriptor.privilege_intent, probe=session.privilege_probe)
        except RootPrivilegesRequired as exc:
            return CommandFailed(ExitCode.PRIVILEGE_ERROR, str(exc))

    if not descriptor.needs_lock:
        return descriptor.handler(session)

    with ExitStack() as stack:
        try:
            stack.enter_context(session.manager.acquire(read_only=descriptor.read_only))
        except TransactionLockError as exc:
            logger.info("lock held: %s", exc)
            session.out.error(LOCKED_MESSAGE)
            return ExitRequest(ExitCode.ZYPP_ERROR, "package management locked")
        return descriptor.handler(session)


def apply_outcome(session: Session, outcome: Optional[Outcome]) -> ExitCode:
    state = session.state
    if outcome is None:
        return state.exit_code
    if isinstance(outcome, CommandFailed) and outcome.message:
        session.out.error(outcome.message)
    elif isinstance(outcome, ExitRequest) and outcome.reason:
        logger.debug("%s stopped: %s", state.command.value, outcome.reason)
    if isinstance(outcome, (Completed, CommandFailed, ExitRequest)):
        state.record(outcome.exit_code)
    return state.exit_code


def do_command(session: Session) -> Optional[Outcome]:
    stop = process_command_options(session)
    if stop is not None:
        return stop
    descriptor = session.state.descriptor
    if session.state.running_help:
        session.out.always(descriptor.help)
        return None
    return _run_body(session, descriptor)


def safe_do_command(session: Session) -> ExitCode:
    """Run the session's command, turning every failure into an exit code.

    The terse envelope is open while the command runs and always closed
    afterwards. User aborts are reported without changing the exit code;
    anything unexpected is reported as a bug.
    """

    state = session.state
    out = session.out
    out.open_envelope()
    try:
        apply_outcome(session, do_command(session))
    except AbortRequested as exc:
        logger.info("aborted by user")
        out.error(str(exc))
    except Exception as exc:
        logger.debug("unexpected failure in %s", state.command.value, exc_info=True)
        out.error("Unexpected exception.")
        out.error(str(exc) or type(exc).__name__)
        report_a_bug(session)
        if state.exit_code == ExitCode.OK:
            state.record(exit_code_for_exception(exc))
    finally:
        out.close_envelope()
    return state.exit_code


__all__ = [
    "LOCKED_MESSAGE",
    "apply_outcome",
    "do_command",
    "process_command_options",
    "safe_do_command",
]
