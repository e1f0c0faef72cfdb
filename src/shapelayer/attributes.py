"""Tabular attribute store decoded from the attribute (.dbf) file.

Columns carry an explicit ColumnType tag fixed at decode time, so nothing
downstream needs to discover value types at runtime. Rows are addressed by
0-based position; a missing value is ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


class ColumnType(Enum):
    """Value type of an attribute column."""
    INT = "int"
    FLOAT = "float"
    DATE = "date"
    BOOL = "bool"
    TEXT = "text"


@dataclass(frozen=True)
class Column:
    """A named, typed column."""
    name: str
    type: ColumnType = ColumnType.TEXT


class AttributeTable:
    """Ordered named columns plus ordered rows of values."""

    def __init__(self, columns: list[Column] | None = None) -> None:
        self._columns: list[Column] = []
        self._index: dict[str, int] = {}
        self._rows: list[list[Any]] = []
        for column in columns or []:
            self.add_column(column)

    # -- schema --

    @property
    def columns(self) -> tuple[Column, ...]:
        return tuple(self._columns)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self._columns]

    @property
    def column_count(self) -> int:
        return len(self._columns)

    def add_column(self, column: Column) -> None:
        """Append a column; existing rows get ``None`` for it.

        Raises:
            ValueError: if a column with the same name already exists.
        """
        if column.name in self._index:
            raise ValueError(f"Duplicate column name: {column.name}")
        self._index[column.name] = len(self._columns)
        self._columns.append(column)
        for row in self._rows:
            row.append(None)

    def has_column(self, name: str) -> bool:
        return name in self._index

    def column_index(self, name: str) -> int:
        """Position of ``name``, or -1 if absent."""
        return self._index.get(name, -1)

    def get_column(self, name: str) -> Column | None:
        idx = self._index.get(name)
        return self._columns[idx] if idx is not None else None

    # -- rows --

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def add_row(self, values: list[Any] | dict[str, Any] | None = None) -> int:
        """Append a row and return its index.

        ``values`` is either a positional list (padded/truncated to the
        column count) or a mapping of column name to value; unknown names
        are ignored.
        """
        row: list[Any] = [None] * len(self._columns)
        if isinstance(values, dict):
            for name, value in values.items():
                idx = self._index.get(name)
                if idx is not None:
                    row[idx] = value
        elif values is not None:
            for idx, value in enumerate(values[: len(self._columns)]):
                row[idx] = value
        self._rows.append(row)
        return len(self._rows) - 1

    def get_row(self, index: int) -> dict[str, Any]:
        """Row ``index`` as a column-name mapping.

        Raises:
            IndexError: if ``index`` is out of range.
        """
        if not 0 <= index < len(self._rows):
            raise IndexError(f"Row {index} out of range (0..{len(self._rows) - 1})")
        return dict(zip(self.column_names, self._rows[index]))

    def get_value(self, row: int, column: str) -> Any:
        """Cell value, or ``None`` if the row or column does not exist."""
        idx = self._index.get(column)
        if idx is None or not 0 <= row < len(self._rows):
            return None
        return self._rows[row][idx]

    def set_value(self, row: int, column: str, value: Any) -> None:
        idx = self._index.get(column)
        if idx is None:
            raise KeyError(f"Column not found: {column}")
        if not 0 <= row < len(self._rows):
            raise IndexError(f"Row {row} out of range")
        self._rows[row][idx] = value

    def iter_rows(self) -> Iterator[dict[str, Any]]:
        names = self.column_names
        for row in self._rows:
            yield dict(zip(names, row))

    # -- copies --

    def copy_schema(self) -> AttributeTable:
        """Empty table with the same columns."""
        return AttributeTable(list(self._columns))

    def copy(self) -> AttributeTable:
        """Deep copy of schema and rows."""
        table = self.copy_schema()
        table._rows = [list(row) for row in self._rows]
        return table

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"AttributeTable({len(self._columns)} columns, {len(self._rows)} rows)"
