# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Tabular store contract plus an in-memory implementation.

Rows are addressed 1-based as in a spreadsheet. Ranges use A1 notation
(``Sheet!A:F``); column indexes in ``find_rows`` criteria are relative to the
first column of the range.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional

from roster.core.errors import TabularStoreError

_A1_RANGE = re.compile(
    r"^(?:'?(?P<sheet>[^'!]+)'?!)?(?P<start>[A-Z]+)\d*(?::(?P<end>[A-Z]+)\d*)?$"
)


def column_index(letters: str) -> int:
    """'A' -> 0, 'Z' -> 25, 'AA' -> 26."""
    index = 0
    for ch in letters.upper():
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def parse_range(a1: str) -> tuple[str, int, Optional[int]]:
    """Split ``Sheet!A:F`` into (sheet, start column index, end column index)."""
    match = _A1_RANGE.match(a1.strip())
    if not match or not match.group("sheet"):
        raise TabularStoreError(f"Unsupported range '{a1}'")
    start = column_index(match.group("start"))
    end = column_index(match.group("end")) if match.group("end") else None
    return match.group("sheet"), start, end


class TabularStore(ABC):
    """Remote spreadsheet-style store. Implementations raise TabularStoreError."""

    @abstractmethod
    async def append_row(self, range_name: str, values: list[str]) -> None: ...

    @abstractmethod
    async def read_range(self, range_name: str) -> list[list[str]]: ...

    @abstractmethod
    async def delete_rows(self, sheet: str, start_row: int, end_row: int) -> None: ...

    @abstractmethod
    async def read_cell(self, sheet: str, column: str, row: int) -> str: ...

    @abstractmethod
    async def write_cell(self, sheet: str, column: str, row: int, value: str) -> None: ...

    async def find_rows(self, range_name: str, criteria: dict[int, str]) -> list[int]:
        """Row numbers (1-based) whose cells exactly match every criterion."""
        rows = await self.read_range(range_name)
        matches: list[int] = []
        for number, row in enumerate(rows, start=1):
            if all(idx < len(row) and row[idx] == value for idx, value in criteria.items()):
                matches.append(number)
        return matches


class InMemoryTabularStore(TabularStore):
    """Dict-of-grids store for local runs and tests."""

    def __init__(self, sheets: dict[str, list[list[str]]] | None = None) -> None:
        self._sheets: dict[str, list[list[str]]] = {
            name: [list(row) for row in rows] for name, rows in (sheets or {}).items()
        }

    # ── Read ──

    async def read_range(self, range_name: str) -> list[list[str]]:
        sheet, start, end = parse_range(range_name)
        rows = self._sheets.get(sheet, [])
        result: list[list[str]] = []
        for row in rows:
            cells = row[start:] if end is None else row[start:end + 1]
            while cells and cells[-1] == "":
                cells = cells[:-1]
            result.append(list(cells))
        while result and not result[-1]:
            result.pop()
        return result

    async def read_cell(self, sheet: str, column: str, row: int) -> str:
        rows = self._sheets.get(sheet, [])
        col = column_index(column)
        if row < 1 or row > len(rows) or col >= len(rows[row - 1]):
            return ""
        return rows[row - 1][col]

    # ── Write ──

    async def append_row(self, range_name: str, values: list[str]) -> None:
        sheet, start, _ = parse_range(range_name)
        self._sheets.setdefault(sheet, []).append([""] * start + [str(v) for v in values])

    async def write_cell(self, sheet: str, column: str, row: int, value: str) -> None:
        if row < 1:
            raise TabularStoreError(f"Invalid row {row}")
        rows = self._sheets.setdefault(sheet, [])
        while len(rows) < row:
            rows.append([])
        col = column_index(column)
        cells = rows[row - 1]
        while len(cells) <= col:
            cells.append("")
        cells[col] = value

    async def delete_rows(self, sheet: str, start_row: int, end_row: int) -> None:
        rows = self._sheets.get(sheet)
        if rows is None or start_row < 1 or end_row < start_row or end_row > len(rows):
            raise TabularStoreError(
                f"Cannot delete rows {start_row}-{end_row} from '{sheet}'"
            )
        del rows[start_row - 1:end_row]

    # ── Bulk / internal ──

    def rows(self, sheet: str) -> list[list[str]]:
        """Direct access for tests and seeding."""
        return self._sheets.setdefault(sheet, [])
