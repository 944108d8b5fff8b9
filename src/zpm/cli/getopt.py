"""Table-driven command line tokenizer shared by global and command options.

Unlike :mod:`argparse`, the parser never exits or raises on bad input.
Unrecognised flags and flags missing their required value are collected
under :data:`UNKNOWN` so the caller decides how to fail, and the same
function runs repeatedly inside the interactive shell without any state
carried between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

UNKNOWN = "_unknown"


class Arity(Enum):
    NONE = "none"
    REQUIRED = "required"
    OPTIONAL = "optional"


@dataclass(frozen=True, slots=True)
class OptionSpec:
    name: str
    short: Optional[str] = None
    arity: Arity = Arity.NONE


def flag(name: str, short: Optional[str] = None) -> OptionSpec:
    return OptionSpec(name, short, Arity.NONE)


def value(name: str, short: Optional[str] = None) -> OptionSpec:
    return OptionSpec(name, short, Arity.REQUIRED)


def optional(name: str, short: Optional[str] = None) -> OptionSpec:
    return OptionSpec(name, short, Arity.OPTIONAL)


@dataclass(slots=True)
class ParsedOptions:
    """Option values keyed by long name plus the leftover positionals.

    Every occurrence of an option appends one entry (``""`` for flags), so
    ``len(parsed["verbose"])`` counts repetitions.
    """

    values: Dict[str, List[str]] = field(default_factory=dict)
    arguments: List[str] = field(default_factory=list)
    cursor: int = 0
    errors: List[str] = field(default_factory=list)

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def __getitem__(self, name: str) -> List[str]:
        return self.values[name]

    def get(self, name: str, default: Optional[List[str]] = None) -> Optional[List[str]]:
        return self.values.get(name, default)

    def first(self, name: str, default: Optional[str] = None) -> Optional[str]:
        found = self.values.get(name)
        return found[0] if found else default

    def count(self, name: str) -> int:
        return len(self.values.get(name, ()))

    @property
    def unknown(self) -> List[str]:
        return self.values.get(UNKNOWN, [])

    def _add(self, name: str, val: str) -> None:
        self.values.setdefault(name, []).append(val)

    def _reject(self, token: str, message: str) -> None:
        self._add(UNKNOWN, token)
        self.errors.append(message)


def _index(table: Iterable[OptionSpec]) -> tuple[Mapping[str, OptionSpec], Mapping[str, OptionSpec]]:
    longs: Dict[str, OptionSpec] = {}
    shorts: Dict[str, OptionSpec] = {}
    for spec in table:
        longs[spec.name] = spec
        # first entry wins for a duplicated short letter
        if spec.short and spec.short not in shorts:
            shorts[spec.short] = spec
    return longs, shorts


def _match_long(name: str, longs: Mapping[str, OptionSpec]) -> OptionSpec | str | None:
    if name in longs:
        return longs[name]
    candidates = [spec for key, spec in longs.items() if key.startswith(name)]
    if len(candidates) == 1:
        return candidates[0]
    if len(candidates) > 1:
        return "ambiguous"
    return None


def parse_options(
    argv: Sequence[str],
    table: Iterable[OptionSpec],
    *,
    start: int = 0,
    stop_at_positional: bool = False,
) -> ParsedOptions:
    """Tokenize ``argv[start:]`` against *table*.

    With *stop_at_positional* parsing ends at the first non-option token and
    :attr:`ParsedOptions.cursor` points at it; this is how global options stop
    in front of the command name. Otherwise options and positionals may be
    interleaved and every positional lands in :attr:`ParsedOptions.arguments`.
    ``--`` ends option processing in both modes.
    """

    longs, shorts = _index(table)
    result = ParsedOptions()
    args = list(argv)
    i = start
    n = len(args)

    while i < n:
        token = args[i]

        if token == "--":
            i += 1
            if not stop_at_positional:
                result.arguments.extend(args[i:])
                i = n
            break

        if token.startswith("--"):
            body = token[2:]
            name, eq, attached = body.partition("=")
            spec = _match_long(name, longs)
            i += 1
            if spec == "ambiguous":
                result._reject(token, f"option '--{name}' is ambiguous")
                continue
            if spec is None:
                result._reject(token, f"unrecognized option '--{name}'")
                continue
            if spec.arity is Arity.NONE:
                if eq:
                    result._reject(token, f"option '--{spec.name}' doesn't allow an argument")
                    continue
                result._add(spec.name, "")
            elif spec.arity is Arity.OPTIONAL:
                result._add(spec.name, attached)
            elif eq:
                result._add(spec.name, attached)
            elif i < n:
                result._add(spec.name, args[i])
                i += 1
            else:
                result._reject(token, f"option '--{spec.name}' requires an argument")
            continue

        if token.startswith("-") and token != "-":
            i += 1
            pos = 1
            while pos < len(token):
                letter = token[pos]
                pos += 1
                spec = shorts.get(letter)
                if spec is None:
                    result._reject(f"-{letter}", f"invalid option -- '{letter}'")
                    continue
                if spec.arity is Arity.NONE:
                    result._add(spec.name, "")
                    continue
                rest = token[pos:]
                if rest:
                    result._add(spec.name, rest)
                elif spec.arity is Arity.OPTIONAL:
                    result._add(spec.name, "")
                elif i < n:
                    result._add(spec.name, args[i])
                    i += 1
                else:
                    result._reject(f"-{letter}", f"option requires an argument -- '{letter}'")
                break
            continue

        if stop_at_positional:
            break
        result.arguments.append(token)
        i += 1

    result.cursor = i
    return result


__all__ = [
    "Arity",
    "OptionSpec",
    "ParsedOptions",
    "UNKNOWN",
    "flag",
    "optional",
    "parse_options",
    "value",
]
