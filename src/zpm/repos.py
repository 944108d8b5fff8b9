"""Repository descriptions, URL handling and ``.repo`` file I/O."""

from __future__ import annotations

import configparser
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import urlsplit, urlunsplit
from urllib.request import urlopen

logger = logging.getLogger(__name__)

KNOWN_SCHEMES = frozenset({"http", "https", "ftp", "file", "dir", "cd", "dvd", "nfs", "smb", "iso"})
REPO_TYPES = ("yast2", "rpm-md", "plaindir")
REPO_FILE_SUFFIX = ".repo"


class RepositoryError(RuntimeError):
    """Base class for repository management failures."""


class RepositoryNotFound(RepositoryError):
    def __init__(self, alias: str) -> None:
        super().__init__(f"Repository '{alias}' not found.")
        self.alias = alias


class RepositoryAlreadyExists(RepositoryError):
    def __init__(self, alias: str) -> None:
        super().__init__(f"Repository named '{alias}' already exists. Please use another alias.")
        self.alias = alias


class UnknownRepositoryType(RepositoryError):
    def __init__(self, repo_type: str) -> None:
        super().__init__(f"Unknown repository type '{repo_type}'.")
        self.repo_type = repo_type


class InvalidRepoFile(RepositoryError):
    pass


class InvalidUrlError(ValueError):
    def __init__(self, url: str, reason: str = "") -> None:
        message = f"Given URL is invalid: {url}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.url = url


@dataclass(slots=True)
class RepoInfo:
    alias: str
    base_urls: List[str] = field(default_factory=list)
    name: str = ""
    type: str = ""
    enabled: bool = True
    autorefresh: bool = True
    priority: int = 99
    gpgcheck: bool = True
    filepath: Optional[Path] = None

    @property
    def url(self) -> str:
        return self.base_urls[0] if self.base_urls else ""

    @property
    def display_name(self) -> str:
        return self.name or self.alias


def make_url(text: str) -> str:
    """Validate *text* as a repository URL and return its canonical form.

    Absolute local paths are accepted and turned into ``dir://`` URLs.
    """

    candidate = text.strip()
    if not candidate:
        raise InvalidUrlError(text, "empty")
    if candidate.startswith("/"):
        return f"dir://{candidate}"
    parts = urlsplit(candidate)
    if not parts.scheme:
        raise InvalidUrlError(text, "missing scheme")
    if parts.scheme not in KNOWN_SCHEMES:
        raise InvalidUrlError(text, f"unknown scheme '{parts.scheme}'")
    if parts.scheme in {"http", "https", "ftp", "nfs", "smb"} and not parts.hostname:
        raise InvalidUrlError(text, "missing host")
    if parts.scheme in {"file", "dir", "iso"} and not parts.path:
        raise InvalidUrlError(text, "missing path")
    return candidate


def looks_like_url(text: str) -> bool:
    try:
        make_url(text)
    except InvalidUrlError:
        return False
    return "://" in text


def url_view(url: str, *, with_auth: bool = True, with_query: bool = True) -> str:
    """Render *url* with the user info or query string optionally stripped."""

    parts = urlsplit(url)
    netloc = parts.netloc
    if not with_auth and "@" in netloc:
        netloc = netloc.rsplit("@", 1)[1]
    query = parts.query if with_query else ""
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def additional_repository(url: str, index: int) -> RepoInfo:
    """Build the temporary repository registered for ``--plus-repo``."""

    canonical = make_url(url)
    return RepoInfo(
        alias=f"tmp{index}",
        base_urls=[canonical],
        name=canonical,
        enabled=True,
        autorefresh=True,
    )


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def parse_repo_text(text: str, source: str = "<string>") -> List[RepoInfo]:
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(text, source=source)
    except configparser.Error as exc:
        raise InvalidRepoFile(f"Problem parsing repository file {source}: {exc}") from exc

    repos: List[RepoInfo] = []
    for alias in parser.sections():
        section = parser[alias]
        urls = [u for u in section.get("baseurl", "").split() if u]
        if not urls:
            raise InvalidRepoFile(f"Repository '{alias}' in {source} has no baseurl.")
        try:
            priority = int(section.get("priority", "99"))
        except ValueError:
            priority = 99
        repos.append(
            RepoInfo(
                alias=alias,
                base_urls=urls,
                name=section.get("name", ""),
                type="" if section.get("type", "NONE") == "NONE" else section["type"],
                enabled=_parse_bool(section.get("enabled"), True),
                autorefresh=_parse_bool(section.get("autorefresh"), True),
                priority=priority,
                gpgcheck=_parse_bool(section.get("gpgcheck"), True),
            )
        )
    return repos


def read_repo_file(location: str) -> List[RepoInfo]:
    """Read repositories from a local or remote ``.repo`` file."""

    logger.debug("reading repositories from %s", location)
    if "://" in location:
        with urlopen(location) as response:  # noqa: S310 - user supplied repo file
            text = response.read().decode("utf-8")
    else:
        text = Path(location).read_text(encoding="utf-8")
    return parse_repo_text(text, source=location)


def render_repo_file(repos: Iterable[RepoInfo]) -> str:
    parser = configparser.ConfigParser(interpolation=None)
    for repo in repos:
        parser[repo.alias] = {
            "name": repo.display_name,
            "enabled": "1" if repo.enabled else "0",
            "autorefresh": "1" if repo.autorefresh else "0",
            "baseurl": "\n".join(repo.base_urls),
            "type": repo.type or "NONE",
            "priority": str(repo.priority),
            "gpgcheck": "1" if repo.gpgcheck else "0",
        }
    buf = io.StringIO()
    parser.write(buf)
    return buf.getvalue()


__all__ = [
    "InvalidRepoFile",
    "InvalidUrlError",
    "KNOWN_SCHEMES",
    "REPO_TYPES",
    "RepoInfo",
    "RepositoryAlreadyExists",
    "RepositoryError",
    "RepositoryNotFound",
    "UnknownRepositoryType",
    "additional_repository",
    "looks_like_url",
    "make_url",
    "parse_repo_text",
    "read_repo_file",
    "render_repo_file",
    "url_view",
]
