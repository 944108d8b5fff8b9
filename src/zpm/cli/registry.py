"""Canonical command identifiers and the alias table that resolves them."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

EOF_TOKEN = "\x04"


class UnknownCommandError(LookupError):
    """Raised when a token does not name any known command."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Unknown command '{token}'")
        self.token = token


class Command(Enum):
    NONE = "none"
    HELP = "help"
    SHELL = "shell"
    SHELL_QUIT = "quit"
    INSTALL = "install"
    REMOVE = "remove"
    SRC_INSTALL = "source-install"
    SEARCH = "search"
    INFO = "info"
    RUG_PATCH_INFO = "patch-info"
    RUG_PATTERN_INFO = "pattern-info"
    RUG_PRODUCT_INFO = "product-info"
    LIST_REPOS = "repos"
    ADD_REPO = "addrepo"
    REMOVE_REPO = "removerepo"
    RENAME_REPO = "renamerepo"
    MODIFY_REPO = "modifyrepo"
    REFRESH = "refresh"
    PATCH_CHECK = "patch-check"
    SHOW_PATCHES = "patches"
    LIST_UPDATES = "list-updates"
    XML_LIST_UPDATES_PATCHES = "xml-updates"
    UPDATE = "update"
    DIST_UPGRADE = "dist-upgrade"
    MOO = "moo"

    @property
    def aliases(self) -> Tuple[str, ...]:
        return _ALIASES[self]


_ALIASES: Dict[Command, Tuple[str, ...]] = {
    Command.NONE: (),
    Command.HELP: ("help", "?", "--help", "-h"),
    Command.SHELL: ("shell", "sh"),
    Command.SHELL_QUIT: ("quit", "exit", EOF_TOKEN),
    Command.INSTALL: ("install", "in"),
    Command.REMOVE: ("remove", "rm"),
    Command.SRC_INSTALL: ("source-install", "si"),
    Command.SEARCH: ("search", "se"),
    Command.INFO: ("info", "if"),
    Command.RUG_PATCH_INFO: ("patch-info",),
    Command.RUG_PATTERN_INFO: ("pattern-info",),
    Command.RUG_PRODUCT_INFO: ("product-info",),
    Command.LIST_REPOS: ("repos", "lr", "catalogs", "ca"),
    Command.ADD_REPO: ("addrepo", "ar"),
    Command.REMOVE_REPO: ("removerepo", "rr"),
    Command.RENAME_REPO: ("renamerepo", "nr"),
    Command.MODIFY_REPO: ("modifyrepo", "mr"),
    Command.REFRESH: ("refresh", "ref"),
    Command.PATCH_CHECK: ("patch-check", "pchk"),
    Command.SHOW_PATCHES: ("patches", "pch"),
    Command.LIST_UPDATES: ("list-updates", "lu"),
    Command.XML_LIST_UPDATES_PATCHES: ("xml-updates", "xu"),
    Command.UPDATE: ("update", "up"),
    Command.DIST_UPGRADE: ("dist-upgrade", "dup"),
    Command.MOO: ("moo",),
}


def _build_alias_index(aliases: Mapping[Command, Tuple[str, ...]]) -> Dict[str, Command]:
    index: Dict[str, Command] = {}
    for command, names in aliases.items():
        for name in names:
            if name in index:
                raise ValueError(f"alias '{name}' registered for {index[name]} and {command}")
            index[name] = command
    return index


ALIAS_INDEX: Mapping[str, Command] = _build_alias_index(_ALIASES)


def resolve(token: Optional[str]) -> Command:
    """Return the command named by *token*.

    ``None`` or an empty token means no command was given and yields
    :attr:`Command.NONE`; anything else must match an alias exactly.
    """

    if not token:
        return Command.NONE
    try:
        return ALIAS_INDEX[token]
    except KeyError:
        raise UnknownCommandError(token) from None


__all__ = ["ALIAS_INDEX", "Command", "EOF_TOKEN", "UnknownCommandError", "resolve"]
