"""File-backed implementation of :class:`zpm.services.ResourceManager`.

Repository definitions live as ``.repo`` files in the known-repos directory.
Refreshing a repository downloads its ``repodata.json`` into the raw cache and
rebuilds a normalised copy in the repo cache. Installed resolvables are kept
in a JSON database below the target root.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from contextlib import ExitStack, contextmanager
from dataclasses import asdict, replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit
from urllib.request import urlopen

from . import config
from .atomic_io import atomic_write_json, atomic_write_text
from .locking import GlobalTransactionLock, LockMode, TransactionLockError
from .repos import (
    REPO_FILE_SUFFIX,
    REPO_TYPES,
    InvalidRepoFile,
    RepoInfo,
    RepositoryAlreadyExists,
    RepositoryError,
    RepositoryNotFound,
    UnknownRepositoryType,
    parse_repo_text,
    render_repo_file,
)
from .services import CommitResult, Resolvable, ResolvablePool, version_key

logger = logging.getLogger(__name__)

METADATA_FILE = "repodata.json"
BUILT_FILE = "solv.json"

_CAPABILITY_RE = re.compile(r"^\s*([^<>=\s]+)\s*(?:(<=|>=|=|<|>)\s*(\S+))?\s*$")


def _satisfies(version: str, op: Optional[str], wanted: Optional[str]) -> bool:
    if not op or wanted is None:
        return True
    have, want = version_key(version), version_key(wanted)
    return {
        "<": have < want,
        "<=": have <= want,
        "=": have == want,
        ">=": have >= want,
        ">": have > want,
    }[op]


def _resolvable_from(data: dict, repo: str = "", installed: bool = False) -> Resolvable:
    return Resolvable(
        name=str(data["name"]),
        version=str(data.get("version", "0")),
        kind=str(data.get("kind", "package")),
        arch=str(data.get("arch", "noarch")),
        repo=repo or str(data.get("repo", "")),
        summary=str(data.get("summary", "")),
        description=str(data.get("description", "")),
        installed=installed,
        category=str(data.get("category", "")),
        provides=[str(p) for p in data.get("provides", [])],
        reboot_needed=bool(data.get("reboot_needed", False)),
        affects_package_manager=bool(data.get("affects_package_manager", False)),
    )


class LocalResourceManager:
    """Package-management state stored in plain files."""

    def __init__(
        self,
        *,
        known_repos_path: str,
        repo_cache_path: str,
        raw_cache_path: str,
        root: str = config.DEFAULT_ROOT,
        lock_path: Optional[Path] = None,
    ) -> None:
        self.known_repos_path = Path(known_repos_path)
        self.repo_cache_path = Path(repo_cache_path)
        self.raw_cache_path = Path(raw_cache_path)
        self.root = Path(root)
        self.lock_path = lock_path or config.LOCK_PATH
        self._ephemeral: Dict[str, RepoInfo] = {}
        self._selection: Dict[Tuple[str, str], bool] = {}
        self._pool: Optional[ResolvablePool] = None

    # ------------------------------------------------------------------ lock
    def _take_lock(self, stack: ExitStack, mode: LockMode) -> Optional[GlobalTransactionLock]:
        lock = GlobalTransactionLock(self.lock_path, mode)
        try:
            stack.enter_context(lock)
        except PermissionError as exc:
            if mode is LockMode.EXCLUSIVE:
                # callers that cannot write the pid file only read the state
                logger.debug("cannot take the exclusive lock, reading only: %s", exc)
                return self._take_lock(stack, LockMode.SHARED)
            logger.debug("running without the package management lock: %s", exc)
            return None
        except TransactionLockError as exc:
            if mode is LockMode.EXCLUSIVE:
                raise
            # readers may look at the state while a transaction runs
            logger.debug("reading while the lock is held elsewhere: %s", exc)
            return None
        logger.debug("package management lock taken (%s): %s", mode.value, lock.path)
        return lock

    @contextmanager
    def acquire(self, *, read_only: bool = False) -> Iterator[Optional[GlobalTransactionLock]]:
        mode = LockMode.SHARED if read_only else LockMode.EXCLUSIVE
        with ExitStack() as stack:
            yield self._take_lock(stack, mode)

    # ---------------------------------------------------------- repositories
    def _read_repo_files(self) -> List[RepoInfo]:
        if not self.known_repos_path.is_dir():
            return []
        repos: List[RepoInfo] = []
        for path in sorted(self.known_repos_path.glob(f"*{REPO_FILE_SUFFIX}")):
            try:
                parsed = parse_repo_text(path.read_text(encoding="utf-8"), source=str(path))
            except InvalidRepoFile as exc:
                logger.warning("skipping broken repository file: %s", exc)
                continue
            for repo in parsed:
                repo.filepath = path
                repos.append(repo)
        return repos

    def list_repositories(self) -> List[RepoInfo]:
        return [*self._read_repo_files(), *self._ephemeral.values()]

    def _find(self, alias: str) -> RepoInfo:
        for repo in self.list_repositories():
            if repo.alias == alias:
                return repo
        raise RepositoryNotFound(alias)

    def _write_repo(self, repo: RepoInfo) -> None:
        target = self.known_repos_path / f"{repo.alias}{REPO_FILE_SUFFIX}"
        atomic_write_text(target, render_repo_file([repo]))
        repo.filepath = target

    def _drop_repo_file(self, repo: RepoInfo) -> None:
        if repo.filepath is None:
            return
        siblings = [
            r for r in parse_repo_text(repo.filepath.read_text(encoding="utf-8"), str(repo.filepath))
            if r.alias != repo.alias
        ]
        if siblings:
            atomic_write_text(repo.filepath, render_repo_file(siblings))
        else:
            repo.filepath.unlink()

    def add_repository(self, repo: RepoInfo, *, persistent: bool = True) -> None:
        if repo.type and repo.type not in REPO_TYPES:
            raise UnknownRepositoryType(repo.type)
        if any(r.alias == repo.alias for r in self.list_repositories()):
            raise RepositoryAlreadyExists(repo.alias)
        if persistent:
            self._write_repo(repo)
        else:
            self._ephemeral[repo.alias] = repo
        logger.info("added repository %s (%s)", repo.alias, repo.url)

    def remove_repository(self, alias: str) -> None:
        if alias in self._ephemeral:
            del self._ephemeral[alias]
        else:
            self._drop_repo_file(self._find(alias))
        for base in (self.repo_cache_path, self.raw_cache_path):
            shutil.rmtree(base / alias, ignore_errors=True)
        logger.info("removed repository %s", alias)

    def rename_repository(self, alias: str, new_alias: str) -> None:
        repo = self._find(alias)
        if any(r.alias == new_alias for r in self.list_repositories()):
            raise RepositoryAlreadyExists(new_alias)
        if alias in self._ephemeral:
            del self._ephemeral[alias]
            self._ephemeral[new_alias] = replace(repo, alias=new_alias)
        else:
            self._drop_repo_file(repo)
            self._write_repo(replace(repo, alias=new_alias, filepath=None))
        for base in (self.repo_cache_path, self.raw_cache_path):
            if (base / alias).exists():
                (base / alias).rename(base / new_alias)

    def modify_repository(
        self, alias: str, *, enabled: Optional[bool] = None, autorefresh: Optional[bool] = None
    ) -> RepoInfo:
        repo = self._find(alias)
        if enabled is not None:
            repo.enabled = enabled
        if autorefresh is not None:
            repo.autorefresh = autorefresh
        if alias not in self._ephemeral:
            self._drop_repo_file(repo)
            self._write_repo(replace(repo, filepath=None))
        return repo

    def _fetch_metadata(self, repo: RepoInfo) -> bytes:
        url = repo.url
        parts = urlsplit(url)
        if parts.scheme in {"dir", "file", ""}:
            local = Path(parts.path if parts.scheme else url) / METADATA_FILE
            try:
                return local.read_bytes()
            except OSError as exc:
                raise RepositoryError(f"Failed to read metadata of '{repo.alias}': {exc}") from exc
        try:
            with urlopen(f"{url.rstrip('/')}/{METADATA_FILE}") as response:  # noqa: S310
                return response.read()
        except OSError as exc:
            raise RepositoryError(f"Failed to download metadata of '{repo.alias}': {exc}") from exc

    def refresh_repository(
        self,
        repo: RepoInfo,
        *,
        force: bool = False,
        build_only: bool = False,
        download_only: bool = False,
    ) -> bool:
        raw = self.raw_cache_path / repo.alias / METADATA_FILE
        built = self.repo_cache_path / repo.alias / BUILT_FILE
        changed = False

        if not build_only and (force or not raw.exists()):
            data = self._fetch_metadata(repo)
            raw.parent.mkdir(parents=True, exist_ok=True)
            raw.write_bytes(data)
            changed = True

        if not download_only and raw.exists():
            stale = not built.exists() or built.stat().st_mtime < raw.stat().st_mtime
            if force or changed or stale:
                self._build_cache(repo, raw, built)
                changed = True
        return changed

    def _build_cache(self, repo: RepoInfo, raw: Path, built: Path) -> None:
        try:
            payload = json.loads(raw.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise RepositoryError(f"Invalid metadata in repository '{repo.alias}': {exc}") from exc
        entries = payload.get("resolvables", []) if isinstance(payload, dict) else payload
        try:
            normalised = [asdict(_resolvable_from(entry, repo=repo.alias)) for entry in entries]
        except (KeyError, TypeError) as exc:
            raise RepositoryError(f"Invalid metadata in repository '{repo.alias}': {exc}") from exc
        atomic_write_json(built, normalised)

    # ------------------------------------------------------------ resolvables
    @property
    def installed_db(self) -> Path:
        return self.root / config.INSTALLED_DB

    def _read_installed(self) -> List[Resolvable]:
        try:
            entries = json.loads(self.installed_db.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except ValueError as exc:
            raise RepositoryError(f"Installed database {self.installed_db} is corrupt: {exc}") from exc
        return [_resolvable_from(entry, installed=True) for entry in entries]

    def load_resolvables(
        self, repos: Sequence[RepoInfo], *, include_installed: bool = True
    ) -> ResolvablePool:
        installed = self._read_installed() if include_installed else []
        seen = {(r.kind, r.name, r.version) for r in installed}
        available: List[Resolvable] = []
        for repo in repos:
            if not repo.enabled:
                continue
            built = self.repo_cache_path / repo.alias / BUILT_FILE
            if not built.exists():
                logger.info("repository %s has no cached metadata", repo.alias)
                continue
            for entry in json.loads(built.read_text(encoding="utf-8")):
                item = _resolvable_from(entry, repo=repo.alias)
                item.installed = (item.kind, item.name, item.version) in seen
                available.append(item)
        self._pool = ResolvablePool(available=available, installed=installed)
        return self._pool

    def _require_pool(self) -> ResolvablePool:
        if self._pool is None:
            raise RepositoryError("Resolvables have not been loaded.")
        return self._pool

    def _matches(self, item: Resolvable, name: str, kind: str, by_capability: bool) -> bool:
        if item.kind != kind:
            return False
        if not by_capability:
            return item.name == name
        m = _CAPABILITY_RE.match(name)
        if not m:
            return False
        cap, op, ver = m.groups()
        if item.name != cap and cap not in item.provides:
            return False
        return _satisfies(item.version, op, ver)

    def mark(self, name: str, kind: str, *, install: bool, by_capability: bool = False) -> bool:
        pool = self._require_pool()
        candidates = pool.available if install else pool.installed
        found = [r for r in candidates if self._matches(r, name, kind, by_capability)]
        if not found:
            return False
        for item in found:
            self._selection[(item.kind, item.name)] = install
        return True

    def clear_selections(self) -> None:
        self._selection.clear()

    def resolve(self) -> List[str]:
        pool = self._require_pool()
        problems = []
        for (kind, name), install in sorted(self._selection.items()):
            if install and not pool.by_name(name, kind):
                problems.append(f"nothing provides {kind} '{name}'")
        return problems

    def _best(self, kind: str, name: str) -> Resolvable:
        pool = self._require_pool()
        candidates = [r for r in pool.available if r.kind == kind and r.name == name]
        return max(candidates, key=lambda r: version_key(r.version))

    def commit(self, *, dry_run: bool = False) -> CommitResult:
        pool = self._require_pool()
        result = CommitResult(dry_run=dry_run)
        installed = {(r.kind, r.name): r for r in pool.installed}

        for (kind, name), install in sorted(self._selection.items()):
            if install:
                chosen = self._best(kind, name)
                current = installed.get((kind, name))
                if current is not None and current.version == chosen.version:
                    continue
                installed[(kind, name)] = replace(chosen, installed=True)
                result.installed.append(f"{name}-{chosen.version}")
                result.reboot_needed |= chosen.reboot_needed
                result.restart_needed |= chosen.affects_package_manager
            elif installed.pop((kind, name), None) is not None:
                result.removed.append(name)

        if not dry_run and not result.empty:
            atomic_write_json(self.installed_db, [asdict(r) for r in installed.values()])
            pool.installed = list(installed.values())
        self._selection.clear()
        return result

    def write_solver_testcase(self, directory: str) -> bool:
        target = Path(directory)
        try:
            target.mkdir(parents=True, exist_ok=True)
            atomic_write_json(
                target / "testcase.json",
                {
                    "selection": [
                        {"kind": kind, "name": name, "install": install}
                        for (kind, name), install in sorted(self._selection.items())
                    ],
                    "repositories": [r.alias for r in self.list_repositories()],
                },
            )
        except OSError as exc:
            logger.error("cannot write solver test case to %s: %s", directory, exc)
            return False
        return True


__all__ = ["LocalResourceManager"]
