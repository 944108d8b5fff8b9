"""Interface between the command layer and the package-management backend.

The command layer never reaches into solver, metadata or installed-package
internals. Everything it needs goes through :class:`ResourceManager`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ContextManager, List, Optional, Protocol, Sequence, Tuple

from .repos import RepoInfo

RESOLVABLE_KINDS = ("package", "patch", "pattern", "product", "srcpackage")


class UnknownResolvableKind(ValueError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"Unknown resolvable type: {kind}")
        self.kind = kind


def parse_kind(text: str) -> str:
    kind = text.strip().lower()
    if kind not in RESOLVABLE_KINDS:
        raise UnknownResolvableKind(text)
    return kind


@dataclass(slots=True)
class Resolvable:
    name: str
    version: str
    kind: str = "package"
    arch: str = "noarch"
    repo: str = ""
    summary: str = ""
    description: str = ""
    installed: bool = False
    category: str = ""
    provides: List[str] = field(default_factory=list)
    reboot_needed: bool = False
    affects_package_manager: bool = False

    @property
    def edition(self) -> str:
        return self.version


@dataclass(slots=True)
class CommitResult:
    installed: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    reboot_needed: bool = False
    restart_needed: bool = False
    dry_run: bool = False

    @property
    def empty(self) -> bool:
        return not self.installed and not self.removed


@dataclass(slots=True)
class ResolvablePool:
    """Snapshot of available and installed resolvables."""

    available: List[Resolvable] = field(default_factory=list)
    installed: List[Resolvable] = field(default_factory=list)

    def all(self) -> List[Resolvable]:
        return [*self.installed, *self.available]

    def by_name(self, name: str, kind: Optional[str] = None) -> List[Resolvable]:
        return [
            r for r in self.all()
            if r.name == name and (kind is None or r.kind == kind)
        ]


class ResourceManager(Protocol):
    """Operations the command layer consumes from the backend."""

    def acquire(self, *, read_only: bool = False) -> ContextManager[object]:
        """Take the package-management lock for the duration of a command.

        Raises :class:`zpm.locking.TransactionLockError` immediately when another
        process holds it. Read-only acquisitions never fail; while held they
        keep writers out.
        """

    def list_repositories(self) -> List[RepoInfo]:
        ...

    def add_repository(self, repo: RepoInfo, *, persistent: bool = True) -> None:
        ...

    def remove_repository(self, alias: str) -> None:
        ...

    def rename_repository(self, alias: str, new_alias: str) -> None:
        ...

    def modify_repository(
        self, alias: str, *, enabled: Optional[bool] = None, autorefresh: Optional[bool] = None
    ) -> RepoInfo:
        ...

    def refresh_repository(
        self,
        repo: RepoInfo,
        *,
        force: bool = False,
        build_only: bool = False,
        download_only: bool = False,
    ) -> bool:
        ...

    def load_resolvables(
        self, repos: Sequence[RepoInfo], *, include_installed: bool = True
    ) -> ResolvablePool:
        ...

    def mark(self, name: str, kind: str, *, install: bool, by_capability: bool = False) -> bool:
        ...

    def clear_selections(self) -> None:
        ...

    def resolve(self) -> List[str]:
        """Resolve dependencies of the current selection, returning problems."""

    def commit(self, *, dry_run: bool = False) -> CommitResult:
        ...

    def write_solver_testcase(self, directory: str) -> bool:
        ...


_SEGMENT_RE = re.compile(r"(\d+|[A-Za-z]+)")


def version_key(version: str) -> Tuple[Tuple[int, object], ...]:
    """Sort key comparing versions segment by segment, numbers numerically."""

    key = []
    for seg in _SEGMENT_RE.findall(version):
        if seg.isdigit():
            key.append((1, int(seg)))
        else:
            key.append((0, seg))
    return tuple(key)


__all__ = [
    "CommitResult",
    "RESOLVABLE_KINDS",
    "Resolvable",
    "ResolvablePool",
    "ResourceManager",
    "UnknownResolvableKind",
    "version_key",
    "parse_kind",
]
