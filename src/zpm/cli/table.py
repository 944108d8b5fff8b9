"""Plain-text tables for repository and search listings."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Sequence


class TableStyle(IntEnum):
    ASCII = 0
    LIGHT = 1
    HEAVY = 2
    DOUBLE = 3
    LIGHT3 = 4
    HEAVY3 = 5
    NONE = 6

    @classmethod
    def parse(cls, text: str) -> "TableStyle":
        """Return the style numbered *text*; raises ``ValueError`` when out of range."""

        return cls(int(text.strip()))


# (column separator, header rule, rule junction)
_STYLE_CHARS = {
    TableStyle.ASCII: (" | ", "-", "-+-"),
    TableStyle.LIGHT: (" │ ", "─", "─┼─"),
    TableStyle.HEAVY: (" ┃ ", "━", "━╋━"),
    TableStyle.DOUBLE: (" ║ ", "═", "═╬═"),
    TableStyle.LIGHT3: (" ┆ ", "─", "─┼─"),
    TableStyle.HEAVY3: (" ┇ ", "━", "━╋━"),
    TableStyle.NONE: ("  ", "", ""),
}


@dataclass
class Table:
    header: Sequence[str]
    style: TableStyle = TableStyle.ASCII
    rows: List[List[str]] = field(default_factory=list)

    def add(self, *cells: object) -> None:
        self.rows.append([str(c) for c in cells])

    @property
    def empty(self) -> bool:
        return not self.rows

    def sort(self, column: int) -> None:
        self.rows.sort(key=lambda row: (row[column].lower(), row))

    def render(self) -> str:
        sep, rule, junction = _STYLE_CHARS[self.style]
        widths = [len(h) for h in self.header]
        for row in self.rows:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(cell))

        def line(cells: Sequence[str]) -> str:
            return sep.join(c.ljust(w) for c, w in zip(cells, widths)).rstrip()

        out = [line(self.header)]
        if rule:
            out.append(junction.join(rule * w for w in widths))
        out.extend(line(row) for row in self.rows)
        return "\n".join(out)

    def __str__(self) -> str:
        return self.render()


__all__ = ["Table", "TableStyle"]
