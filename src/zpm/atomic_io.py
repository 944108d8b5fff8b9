"""Crash-safe writes for repository definitions and the installed database."""

from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from . import config


def _sync_directory(path: Path) -> None:
    try:
        dir_fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


@contextmanager
def _config_umask() -> Iterator[None]:
    previous = os.umask(config.UMASK)
    try:
        yield
    finally:
        os.umask(previous)


def safe_write(path: Union[str, Path], data: Union[str, bytes], *, encoding: str = "utf-8") -> Path:
    """Atomically write *data* to *path*, creating parent directories."""

    payload = data.encode(encoding) if isinstance(data, str) else bytes(data)
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_path, 0o666 & ~config.UMASK)
        os.replace(tmp_path, target)
    finally:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass

    _sync_directory(target.parent)
    return target


def atomic_write_text(path: Union[str, Path], text: str) -> None:
    with _config_umask():
        safe_write(path, text)


def atomic_write_json(path: Union[str, Path], obj: object) -> None:
    payload = json.dumps(obj, indent=2, sort_keys=True)
    atomic_write_text(path, payload + "\n")


__all__ = ["atomic_write_json", "atomic_write_text", "safe_write"]
