"""Commands about the program itself: help, shell, quit and moo."""

from __future__ import annotations

from ...exitcodes import ExitCode
from ..context import Session
from ..descriptors import CommandDescriptor, options
from ..help import print_command_help_hint, print_unknown_command_hint, report_a_bug
from ..outcome import DONE, CommandFailed, Outcome
from ..registry import Command

HELP_HELP = """\
help (?) [command]

Print help on global options and commands, or on the given command.
"""

SHELL_HELP = """\
shell (sh)

Enter the zpm command shell.

This command has no additional options.
"""

QUIT_HELP = """\
quit (exit, ^D)

Quit the current zpm shell.

This command has no additional options.
"""

MOO_HELP = """\
moo

Show an animal

This command has no additional options.
"""

HEDGEHOG = r"""   \\\\\
  \\\\\\\__o
__\\\\\\\'/_"""


def show_help_hints(session: Session) -> Outcome:
    print_unknown_command_hint(session)
    print_command_help_hint(session)
    return DONE


def shell(session: Session) -> Outcome:
    if session.running_shell:
        session.out.info("You already are running the zpm shell.")
        return DONE
    session.out.error("Unexpected program flow.")
    report_a_bug(session)
    return CommandFailed(ExitCode.BUG)


def quit_shell(session: Session) -> Outcome:
    if not session.running_shell:
        session.out.info("This command only makes sense in the zpm shell.")
    return DONE


def moo(session: Session) -> Outcome:
    session.out.info(HEDGEHOG)
    return DONE


DESCRIPTORS = (
    CommandDescriptor(Command.HELP, options(), HELP_HELP, show_help_hints, needs_lock=False),
    CommandDescriptor(Command.SHELL, options(), SHELL_HELP, shell),
    CommandDescriptor(Command.SHELL_QUIT, options(), QUIT_HELP, quit_shell),
    CommandDescriptor(Command.MOO, options(), MOO_HELP, moo),
)
