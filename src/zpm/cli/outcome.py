"""Results a command body hands back to the execution guard.

Early termination is a value, not an exception: ``ExitRequest`` stops the
current command quietly, ``CommandFailed`` reports a message and lets the
shell carry on, ``Completed`` is the normal end.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..exitcodes import ExitCode


class AbortRequested(Exception):
    """The user chose to abort the running command."""

    def __init__(self, message: str = "User requested to abort.") -> None:
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class Completed:
    exit_code: ExitCode = ExitCode.OK


@dataclass(frozen=True, slots=True)
class CommandFailed:
    exit_code: ExitCode
    message: str = ""


@dataclass(frozen=True, slots=True)
class ExitRequest:
    exit_code: Optional[ExitCode] = None
    reason: str = ""


Outcome = Union[Completed, CommandFailed, ExitRequest]

DONE = Completed()


__all__ = ["AbortRequested", "CommandFailed", "Completed", "DONE", "ExitRequest", "Outcome"]
