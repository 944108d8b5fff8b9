"""Interactive shell running one command per input line."""

from __future__ import annotations

import logging
import shlex
from enum import Enum
from pathlib import Path
from typing import List, Optional

try:
    import readline
except ImportError:  # pragma: no cover - platforms without readline
    readline = None

from .. import config
from ..exitcodes import ExitCode
from .context import Session
from .descriptors import descriptor_for
from .guard import safe_do_command
from .help import print_unknown_command_hint
from .registry import EOF_TOKEN, Command, UnknownCommandError, resolve

logger = logging.getLogger(__name__)

PROMPT = "zpm> "


class ShellState(Enum):
    READING = "reading"
    DISPATCHING = "dispatching"
    RESETTING = "resetting"
    TERMINATED = "terminated"


class ShellHistory:
    """Line history kept in a file; every failure to read or write it is ignored."""

    def __init__(self, path: Optional[Path]) -> None:
        self.path = path

    @property
    def usable(self) -> bool:
        return readline is not None and self.path is not None

    def load(self) -> None:
        if not self.usable or not self.path.exists():
            return
        try:
            readline.read_history_file(str(self.path))
        except OSError as exc:
            logger.debug("cannot read shell history %s: %s", self.path, exc)

    def save(self) -> None:
        if not self.usable:
            return
        try:
            readline.write_history_file(str(self.path))
        except OSError as exc:
            logger.debug("cannot write shell history %s: %s", self.path, exc)


def shell_cleanup(session: Session) -> None:
    """Drop everything the last command left behind.

    Pending install/remove selections are cleared on the backend, the
    per-command state goes back to defaults and the current repository is
    forgotten.
    """

    descriptor = session.state.descriptor or descriptor_for(session.state.command)
    if descriptor is not None and descriptor.cleanup is not None and session.has_manager:
        descriptor.cleanup(session)
    session.state.reset()
    session.apply_output_mode()
    session.current_repo = None


class Shell:
    """READING -> DISPATCHING -> RESETTING -> READING until TERMINATED."""

    def __init__(self, session: Session, history: Optional[ShellHistory] = None) -> None:
        self.session = session
        self.history = history or ShellHistory(config.history_file())
        self.state = ShellState.READING

    def _read(self) -> Optional[List[str]]:
        out = self.session.out
        try:
            line = out.read_line(PROMPT)
        except EOFError:
            out.always()
            return None
        except KeyboardInterrupt:
            out.always()
            return []
        try:
            return shlex.split(line)
        except ValueError as exc:
            out.error(f"Cannot parse the input line: {exc}")
            return []

    def _dispatch(self, argv: List[str]) -> None:
        session = self.session
        token = argv[0]
        if token == EOF_TOKEN:
            self.state = ShellState.TERMINATED
            return
        try:
            command = resolve(token)
        except UnknownCommandError as exc:
            session.out.error(str(exc))
            print_unknown_command_hint(session)
            return
        if command is Command.SHELL_QUIT:
            self.state = ShellState.TERMINATED
            return
        session.state.command = command
        session.state.argv = argv[1:]
        code = safe_do_command(session)
        logger.debug("shell command %s finished with %d", command.value, code)

    def step(self) -> ShellState:
        """Read and run one line, then move to the next state."""

        argv = self._read()
        if argv is None:
            self.state = ShellState.TERMINATED
            return self.state
        if not argv:
            return self.state
        self.state = ShellState.DISPATCHING
        try:
            self._dispatch(argv)
        finally:
            if self.state is not ShellState.TERMINATED:
                self.state = ShellState.RESETTING
            shell_cleanup(self.session)
        if self.state is ShellState.RESETTING:
            self.state = ShellState.READING
        return self.state

    def run(self) -> ExitCode:
        session = self.session
        session.state.running_shell = True
        self.history.load()
        try:
            while self.state is not ShellState.TERMINATED:
                self.step()
        finally:
            self.history.save()
            session.state.running_shell = False
        return session.exit_code


def command_shell(session: Session) -> ExitCode:
    return Shell(session).run()


__all__ = ["PROMPT", "Shell", "ShellHistory", "ShellState", "command_shell", "shell_cleanup"]
