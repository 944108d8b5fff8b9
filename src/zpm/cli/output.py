"""User-facing output: verbosity filtering, prompts and the terse envelope."""

from __future__ import annotations

import sys
from typing import Callable, Optional, TextIO
from xml.sax.saxutils import escape

from .outcome import AbortRequested

ENVELOPE_OPEN = "<?xml version='1.0'?>\n<stream>"
ENVELOPE_CLOSE = "</stream>"

VERBOSITY_QUIET = -1
VERBOSITY_NORMAL = 0
VERBOSITY_HIGH = 1
VERBOSITY_DEBUG = 2

LineReader = Callable[[str], str]


class Output:
    """Writes messages according to verbosity and machine-readable mode.

    ``always`` prints regardless of verbosity, ``info`` is suppressed by
    ``--quiet`` and ``verbose`` needs at least one ``--verbose``. Errors and
    warnings go to stderr, or into ``<message>`` elements on stdout when the
    terse mode is active.
    """

    def __init__(
        self,
        *,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        reader: Optional[LineReader] = None,
    ) -> None:
        self._stdout = stdout
        self._stderr = stderr
        self._reader = reader or input
        self.verbosity = VERBOSITY_NORMAL
        self.machine_readable = False
        self.non_interactive = False
        self._envelope_open = False

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def stderr(self) -> TextIO:
        return self._stderr or sys.stderr

    def _emit(self, stream: TextIO, text: str, end: str = "\n") -> None:
        stream.write(f"{text}{end}")
        stream.flush()

    def always(self, text: str = "", end: str = "\n") -> None:
        self._emit(self.stdout, text, end)

    def info(self, text: str = "", end: str = "\n") -> None:
        if self.verbosity >= VERBOSITY_NORMAL:
            self._emit(self.stdout, text, end)

    def verbose(self, text: str = "", end: str = "\n") -> None:
        if self.verbosity >= VERBOSITY_HIGH:
            self._emit(self.stdout, text, end)

    def _message(self, kind: str, text: str) -> None:
        if self.machine_readable:
            self._emit(self.stdout, f'<message type="{kind}">{escape(text)}</message>')
        else:
            self._emit(self.stderr, text)

    def error(self, text: str) -> None:
        self._message("error", text)

    def warning(self, text: str) -> None:
        self._message("warning", text)

    # ------------------------------------------------------------- envelope
    @property
    def envelope_open(self) -> bool:
        return self._envelope_open

    def open_envelope(self) -> None:
        if self.machine_readable and not self._envelope_open:
            self._emit(self.stdout, ENVELOPE_OPEN)
            self._envelope_open = True

    def close_envelope(self) -> None:
        if self._envelope_open:
            self._emit(self.stdout, ENVELOPE_CLOSE)
            self._envelope_open = False

    # -------------------------------------------------------------- prompts
    def read_line(self, prompt: str) -> str:
        return self._reader(prompt)

    def confirm(self, question: str, default: bool = True) -> bool:
        """Ask a yes/no question; non-interactive mode takes *default*."""

        choices = "[Y/n]" if default else "[y/N]"
        if self.non_interactive:
            self.info(f"{question} {choices}: {'y' if default else 'n'}")
            return default
        while True:
            try:
                answer = self.read_line(f"{question} {choices}: ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                self.always()
                raise AbortRequested() from None
            if not answer:
                return default
            if answer in {"y", "yes"}:
                return True
            if answer in {"n", "no"}:
                return False
            if answer in {"a", "abort"}:
                raise AbortRequested()
            self.always("Please answer 'y', 'n' or 'a' (abort).")


__all__ = [
    "ENVELOPE_CLOSE",
    "ENVELOPE_OPEN",
    "LineReader",
    "Output",
    "VERBOSITY_DEBUG",
    "VERBOSITY_HIGH",
    "VERBOSITY_NORMAL",
    "VERBOSITY_QUIET",
]
