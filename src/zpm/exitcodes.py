"""Process exit codes and the mapping from internal outcomes onto them.

Scripts branch on these values, so they are fixed: the informational codes
(``1xx``) are returned on success when the system needs attention.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .services import CommitResult


class ExitCode(IntEnum):
    OK = 0
    BUG = 1
    SYNTAX_ERROR = 2
    INVALID_ARGS = 3
    ZYPP_ERROR = 4
    PRIVILEGE_ERROR = 5
    UPDATE_NEEDED = 100
    SECURITY_UPDATE_NEEDED = 101
    REBOOT_NEEDED = 102
    RESTART_NEEDED = 103

    @property
    def is_error(self) -> bool:
        return 0 < self.value < 100

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ExitCode.OK: "success",
    ExitCode.BUG: "unexpected situation, please file a bug",
    ExitCode.SYNTAX_ERROR: "syntax error on the command line",
    ExitCode.INVALID_ARGS: "invalid arguments",
    ExitCode.ZYPP_ERROR: "package management library failure",
    ExitCode.PRIVILEGE_ERROR: "insufficient privileges",
    ExitCode.UPDATE_NEEDED: "updates are available",
    ExitCode.SECURITY_UPDATE_NEEDED: "security updates are available",
    ExitCode.REBOOT_NEEDED: "a reboot is needed",
    ExitCode.RESTART_NEEDED: "the package manager must be restarted",
}


def merge_exit_code(current: ExitCode, new: Optional[ExitCode]) -> ExitCode:
    """Combine the code already recorded with a newly reported one.

    A missing or ``OK`` report never replaces an already recorded non-OK code.
    """

    if new is None or new == ExitCode.OK:
        return current
    return ExitCode(new)


def exit_code_for_exception(exc: BaseException) -> ExitCode:
    """Return the exit code for a failure that escaped a command body."""

    # Local imports keep this module importable from every layer.
    from .locking import TransactionLockError
    from .privileges import RootPrivilegesRequired
    from .repos import InvalidUrlError, RepositoryError

    if isinstance(exc, RootPrivilegesRequired):
        return ExitCode.PRIVILEGE_ERROR
    if isinstance(exc, InvalidUrlError):
        return ExitCode.INVALID_ARGS
    if isinstance(exc, (TransactionLockError, RepositoryError)):
        return ExitCode.ZYPP_ERROR
    return ExitCode.BUG


def exit_code_for_commit(result: "CommitResult") -> ExitCode:
    if result.restart_needed:
        return ExitCode.RESTART_NEEDED
    if result.reboot_needed:
        return ExitCode.REBOOT_NEEDED
    return ExitCode.OK


def exit_code_for_patches(security_count: int, other_count: int) -> ExitCode:
    if security_count > 0:
        return ExitCode.SECURITY_UPDATE_NEEDED
    if other_count > 0:
        return ExitCode.UPDATE_NEEDED
    return ExitCode.OK


__all__ = [
    "ExitCode",
    "exit_code_for_commit",
    "exit_code_for_exception",
    "exit_code_for_patches",
    "merge_exit_code",
]
