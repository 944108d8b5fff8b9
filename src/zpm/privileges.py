"""Root privilege checks for commands that modify the system.

Commands that change repositories or installed packages must run as
``root``. The check happens before the package-management lock is touched so
an unprivileged caller never competes for it.
"""

from __future__ import annotations

import os
import shlex
import sys
from typing import Callable, Iterable

__all__ = [
    "PrivilegeProbe",
    "RootPrivilegesRequired",
    "format_command_for_hint",
    "is_root",
    "require_root",
]

PrivilegeProbe = Callable[[], bool]


class RootPrivilegesRequired(PermissionError):
    """Raised when an operation needs root privileges but none are present."""

    def __init__(self, intent: str | None = None):
        message = "Root privileges are required"
        if intent:
            message += f" for {intent}"
        message += f". Re-run with 'sudo {format_command_for_hint()}'."
        super().__init__(message)
        self.intent = intent


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    if not callable(geteuid):
        return False
    try:
        return geteuid() == 0
    except OSError:
        return False


def format_command_for_hint(argv: Iterable[str] | None = None) -> str:
    args = list(argv if argv is not None else sys.argv)
    if not args:
        executable = getattr(sys, "executable", None) or "python3"
        args = [executable, "-m", "zpm"]
    return shlex.join(args)


def require_root(intent: str | None = None, probe: PrivilegeProbe = is_root) -> None:
    if probe():
        return
    raise RootPrivilegesRequired(intent)
