"""Per-command descriptors: option table, help text, handler and policy."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Mapping, Optional, Tuple

from .getopt import OptionSpec, flag
from .outcome import Outcome
from .registry import Command

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .context import Session

Handler = Callable[["Session"], Optional[Outcome]]
Cleanup = Callable[["Session"], None]

HELP_OPTION = flag("help", "h")


@dataclass(frozen=True)
class CommandDescriptor:
    """Static description of one command.

    ``privilege_intent`` names what the command does when it needs root;
    ``None`` means no privilege check. ``read_only`` commands take the
    package-management lock in read-only mode, ``needs_lock=False`` commands
    never touch it.
    """

    command: Command
    options: Tuple[OptionSpec, ...]
    help: str
    handler: Handler
    privilege_intent: Optional[str] = None
    read_only: bool = False
    needs_lock: bool = True
    manages_repos: bool = False
    cleanup: Optional[Cleanup] = None

    @property
    def requires_root(self) -> bool:
        return self.privilege_intent is not None


def options(*specs: OptionSpec) -> Tuple[OptionSpec, ...]:
    """Return an option table that always understands ``-h/--help``."""

    if any(spec.name == HELP_OPTION.name for spec in specs):
        return tuple(specs)
    return (*specs, HELP_OPTION)


def build_table(descriptors: Iterable[CommandDescriptor]) -> Dict[Command, CommandDescriptor]:
    table: Dict[Command, CommandDescriptor] = {}
    for desc in descriptors:
        if desc.command in table:
            raise ValueError(f"duplicate descriptor for {desc.command}")
        table[desc.command] = desc
    return table


@lru_cache(maxsize=1)
def descriptor_table() -> Mapping[Command, CommandDescriptor]:
    from .commands import ALL_DESCRIPTORS

    return build_table(ALL_DESCRIPTORS)


def descriptor_for(command: Command) -> Optional[CommandDescriptor]:
    return descriptor_table().get(command)


__all__ = [
    "CommandDescriptor",
    "Cleanup",
    "HELP_OPTION",
    "Handler",
    "build_table",
    "descriptor_for",
    "descriptor_table",
    "options",
]
