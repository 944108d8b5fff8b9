from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import pytest

from zpm.locking import TransactionLockError
from zpm.logging_config import LOGGER_NAME
from zpm.repos import RepoInfo, RepositoryAlreadyExists, RepositoryNotFound
from zpm.services import CommitResult, Resolvable, ResolvablePool
from zpm.cli.context import Session
from zpm.cli.output import Output


class FakeResourceManager:
    """In-memory resource manager recording every call the command layer makes."""

    def __init__(
        self,
        repos: Iterable[RepoInfo] = (),
        available: Iterable[Resolvable] = (),
        installed: Iterable[Resolvable] = (),
    ) -> None:
        self.repos: List[RepoInfo] = list(repos)
        self.available: List[Resolvable] = list(available)
        self.installed: List[Resolvable] = list(installed)
        self.lock_holder: Optional[int] = None
        self.acquisitions: List[bool] = []
        self.added: List[tuple] = []
        self.removed: List[str] = []
        self.refreshed: List[tuple] = []
        self.marks: List[tuple] = []
        self.selection: List[tuple] = []
        self.cleared = 0
        self.commits: List[bool] = []
        self.commit_result: Optional[CommitResult] = None
        self.problems: List[str] = []
        self.testcases: List[str] = []
        self.pool = ResolvablePool()

    @contextmanager
    def acquire(self, *, read_only: bool = False):
        self.acquisitions.append(read_only)
        if self.lock_holder is not None and not read_only:
            raise TransactionLockError(Path("/run/zpm.pid"), self.lock_holder)
        yield self

    def _find(self, alias: str) -> RepoInfo:
        for repo in self.repos:
            if repo.alias == alias:
                return repo
        raise RepositoryNotFound(alias)

    def list_repositories(self) -> List[RepoInfo]:
        return list(self.repos)

    def add_repository(self, repo: RepoInfo, *, persistent: bool = True) -> None:
        if any(r.alias == repo.alias for r in self.repos):
            raise RepositoryAlreadyExists(repo.alias)
        self.repos.append(repo)
        self.added.append((repo.alias, persistent))

    def remove_repository(self, alias: str) -> None:
        self.repos.remove(self._find(alias))
        self.removed.append(alias)

    def rename_repository(self, alias: str, new_alias: str) -> None:
        repo = self._find(alias)
        if any(r.alias == new_alias for r in self.repos):
            raise RepositoryAlreadyExists(new_alias)
        repo.alias = new_alias

    def modify_repository(self, alias, *, enabled=None, autorefresh=None) -> RepoInfo:
        repo = self._find(alias)
        if enabled is not None:
            repo.enabled = enabled
        if autorefresh is not None:
            repo.autorefresh = autorefresh
        return repo

    def refresh_repository(self, repo, *, force=False, build_only=False, download_only=False) -> bool:
        self.refreshed.append((repo.alias, force, build_only, download_only))
        return True

    def load_resolvables(self, repos, *, include_installed: bool = True) -> ResolvablePool:
        aliases = {repo.alias for repo in repos}
        installed = list(self.installed) if include_installed else []
        for item in installed:
            item.installed = True
        have = {(r.kind, r.name, r.version) for r in installed}
        available = []
        for item in self.available:
            if item.repo in aliases:
                item.installed = (item.kind, item.name, item.version) in have
                available.append(item)
        self.pool = ResolvablePool(available=available, installed=installed)
        return self.pool

    def mark(self, name, kind, *, install, by_capability=False) -> bool:
        self.marks.append((name, kind, install, by_capability))
        pool = self.pool.available if install else self.pool.installed
        if not any(r.name == name and r.kind == kind for r in pool):
            return False
        self.selection.append((name, kind, install))
        return True

    def clear_selections(self) -> None:
        self.cleared += 1
        self.selection.clear()

    def resolve(self) -> List[str]:
        return list(self.problems)

    def commit(self, *, dry_run: bool = False) -> CommitResult:
        self.commits.append(dry_run)
        if self.commit_result is not None:
            result = self.commit_result
        else:
            result = CommitResult(
                installed=[name for name, _, install in self.selection if install],
                removed=[name for name, _, install in self.selection if not install],
                dry_run=dry_run,
            )
        self.selection.clear()
        return result

    def write_solver_testcase(self, directory: str) -> bool:
        self.testcases.append(directory)
        return True


def scripted_reader(lines: Iterable[str]) -> Callable[[str], str]:
    """Line reader returning *lines* one by one, then signalling end of input."""

    pending = list(lines)
    prompts: List[str] = []

    def read(prompt: str) -> str:
        prompts.append(prompt)
        if not pending:
            raise EOFError
        return pending.pop(0)

    read.prompts = prompts
    return read


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("ZPM_LOCK_PATH", str(tmp_path / "zpm.pid"))
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        if getattr(handler, "_zpm_handler", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def manager() -> FakeResourceManager:
    return FakeResourceManager()


@pytest.fixture
def make_session(manager):
    def factory(*, root: bool = True, lines: Iterable[str] = ()) -> Session:
        output = Output(reader=scripted_reader(lines))
        return Session(
            output=output,
            manager_factory=lambda gopts: manager,
            privilege_probe=lambda: root,
        )

    return factory


@pytest.fixture
def session(make_session) -> Session:
    return make_session()


def repo(alias: str, url: str = "", **kwargs) -> RepoInfo:
    return RepoInfo(alias=alias, base_urls=[url or f"http://example.com/{alias}"], name=alias, **kwargs)


def package(name: str, version: str = "1.0", repo: str = "main", **kwargs) -> Resolvable:
    return Resolvable(name=name, version=version, repo=repo, **kwargs)
