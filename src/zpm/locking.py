"""Cross-process lock guarding the package-management state.

Writers take an exclusive ``flock`` on the lock file and record their pid in
it. Readers take a shared lock on the same file: any number of them can run
together, and a writer cannot start while one is active. Neither mode waits.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Optional

import fcntl

from . import config


class LockMode(Enum):
    SHARED = "shared"
    EXCLUSIVE = "exclusive"

    @property
    def operation(self) -> int:
        base = fcntl.LOCK_SH if self is LockMode.SHARED else fcntl.LOCK_EX
        return base | fcntl.LOCK_NB


class TransactionLockError(RuntimeError):
    """Raised when the lock cannot be taken in the requested mode."""

    def __init__(
        self,
        lock_path: Path,
        holder_pid: Optional[int],
        mode: LockMode = LockMode.EXCLUSIVE,
    ) -> None:
        self.lock_path = lock_path
        self.holder_pid = holder_pid
        self.mode = mode
        if holder_pid is not None:
            message = f"a package management transaction is already in progress (pid {holder_pid})"
        elif mode is LockMode.EXCLUSIVE:
            message = "the package management state is in use by another process"
        else:
            message = "a package management transaction is already in progress"
        super().__init__(message)


def _holder_pid(fd: int) -> Optional[int]:
    """Pid recorded by the current writer, if any."""

    try:
        data = os.pread(fd, 32, 0)
    except OSError:
        return None
    text = data.decode("ascii", "replace").strip()
    return int(text) if text.isdigit() else None


def _open(path: Path, mode: LockMode) -> int:
    create = os.O_RDWR | os.O_CREAT
    file_mode = 0o644 & ~config.UMASK
    if mode is LockMode.SHARED:
        try:
            return os.open(path, os.O_RDONLY)
        except FileNotFoundError:
            pass
    path.parent.mkdir(parents=True, exist_ok=True)
    return os.open(path, create, file_mode)


class GlobalTransactionLock:
    """Context manager holding the package-management lock in one mode.

    When the lock is taken in a conflicting mode the ``with`` statement fails
    right away with :class:`TransactionLockError`.
    """

    def __init__(self, path: Optional[Path] = None, mode: LockMode = LockMode.EXCLUSIVE) -> None:
        self.path = path or config.LOCK_PATH
        self.mode = mode
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def __enter__(self) -> "GlobalTransactionLock":
        fd = _open(self.path, self.mode)
        try:
            fcntl.flock(fd, self.mode.operation)
        except BlockingIOError:
            holder = _holder_pid(fd)
            os.close(fd)
            raise TransactionLockError(self.path, holder, self.mode) from None
        if self.mode is LockMode.EXCLUSIVE:
            os.ftruncate(fd, 0)
            os.pwrite(fd, f"{os.getpid()}\n".encode("ascii"), 0)
            os.fsync(fd)
        self._fd = fd
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            if self.mode is LockMode.EXCLUSIVE:
                os.ftruncate(fd, 0)
                os.fsync(fd)
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)


def global_transaction_lock(
    path: Optional[Path] = None, mode: LockMode = LockMode.EXCLUSIVE
) -> GlobalTransactionLock:
    return GlobalTransactionLock(path, mode)


__all__ = [
    "GlobalTransactionLock",
    "LockMode",
    "TransactionLockError",
    "global_transaction_lock",
]
