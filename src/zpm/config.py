"""Paths and defaults, overridable from the environment and zpm.conf."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Mapping

logger = logging.getLogger(__name__)

# =========================== Config / Defaults ================================
CONF_FILE = Path(os.environ.get("ZPM_CONF", "/etc/zpm/zpm.conf"))   # KEY=VALUE, e.g. TABLE_STYLE=1
STATE_DIR = Path(os.environ.get("ZPM_STATE_DIR", "/var/lib/zpm"))
LOCK_PATH = Path(os.environ.get("ZPM_LOCK_PATH", "/var/run/zpm.pid"))
KNOWN_REPOS_PATH = "/etc/zpm/repos.d"
REPO_CACHE_PATH = "/var/cache/zpm"
RAW_CACHE_PATH = "/var/cache/zpm/raw"
INSTALLED_DB = "var/lib/zpm/installed.json"     # relative to the target root
RPM_CACHE_DIR = "var/cache/zpm/RPMS"            # relative to the target root
SOLVER_TESTCASE_DIR = "/var/log/zpm.solverTestCase"
HISTORY_FILE_NAME = ".zpm_history"
DEFAULT_ROOT = "/"
DEFAULT_TABLE_STYLE = 0
UMASK = 0o22

PACKAGE_NAME = "zpm"
VERSION = "0.9.0"

# Module-level configuration cache; populated via _apply_conf()
CONF: Dict[str, str] = {}


def load_conf(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    out: Dict[str, str] = {}
    for ln in path.read_text(encoding="utf-8").splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#"):
            continue
        if "=" in ln:
            k, v = ln.split("=", 1)
            out[k.strip()] = v.strip()
    return out


def _apply_conf(conf: Mapping[str, str]) -> None:
    global CONF, STATE_DIR, LOCK_PATH, KNOWN_REPOS_PATH, REPO_CACHE_PATH
    global RAW_CACHE_PATH, DEFAULT_TABLE_STYLE, HISTORY_FILE_NAME

    CONF = dict(conf)

    KNOWN_REPOS_PATH = CONF.get("REPOS_DIR", KNOWN_REPOS_PATH) or KNOWN_REPOS_PATH
    REPO_CACHE_PATH = CONF.get("CACHE_DIR", REPO_CACHE_PATH) or REPO_CACHE_PATH
    RAW_CACHE_PATH = CONF.get("RAW_CACHE_DIR", RAW_CACHE_PATH) or RAW_CACHE_PATH
    HISTORY_FILE_NAME = CONF.get("HISTORY_FILE", HISTORY_FILE_NAME) or HISTORY_FILE_NAME

    if "STATE_DIR" in CONF and "ZPM_STATE_DIR" not in os.environ:
        STATE_DIR = Path(CONF["STATE_DIR"])
    if "LOCK_PATH" in CONF and "ZPM_LOCK_PATH" not in os.environ:
        LOCK_PATH = Path(CONF["LOCK_PATH"])

    try:
        DEFAULT_TABLE_STYLE = max(0, int(CONF.get("TABLE_STYLE", "0")))
    except ValueError:
        logger.warning("Invalid TABLE_STYLE %r in %s; using the default style", CONF["TABLE_STYLE"], CONF_FILE)
        DEFAULT_TABLE_STYLE = 0


def default_repo_manager_options() -> Dict[str, str]:
    """Return the default locations of the three repository resource paths."""

    return {
        "known_repos_path": KNOWN_REPOS_PATH,
        "repo_cache_path": REPO_CACHE_PATH,
        "raw_cache_path": RAW_CACHE_PATH,
    }


def history_file(env: Mapping[str, str] | None = None) -> Path | None:
    """Return the per-user shell history path, or ``None`` without ``$HOME``."""

    env = os.environ if env is None else env
    home = env.get("HOME")
    if not home:
        return None
    return Path(home) / HISTORY_FILE_NAME


# Initialize globals on import
_apply_conf(load_conf(CONF_FILE))


__all__ = [
    "CONF_FILE",
    "STATE_DIR",
    "LOCK_PATH",
    "KNOWN_REPOS_PATH",
    "REPO_CACHE_PATH",
    "RAW_CACHE_PATH",
    "INSTALLED_DB",
    "RPM_CACHE_DIR",
    "SOLVER_TESTCASE_DIR",
    "HISTORY_FILE_NAME",
    "DEFAULT_ROOT",
    "DEFAULT_TABLE_STYLE",
    "UMASK",
    "PACKAGE_NAME",
    "VERSION",
    "CONF",
    "load_conf",
    "default_repo_manager_options",
    "history_file",
]
