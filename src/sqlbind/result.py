"""
Materialized result sets with typed, 1-based column accessors.

A ResultSet is filled from the DB-API cursor when its statement runs, so it
does not depend on the cursor afterwards. It is still single-use: the owning
connection closes it as soon as a newer execution starts, and every read on a
closed result raises ResultSetClosedError.
"""
import logging
from collections.abc import Sequence
from decimal import Decimal
from numbers import Integral, Real
from typing import Any, Self

import pandas as pd
from sqlbind.exceptions import InvalidColumnError, QueryError
from sqlbind.exceptions import ResultSetClosedError, TypeConversionError

__all__ = ['ResultSet']

logger = logging.getLogger(__name__)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
UINT64_MAX = 2 ** 64 - 1


class ResultSet:
    """Forward-only cursor over the rows of one query result.
    """

    def __init__(self, columns: Sequence[str], rows: Sequence[Sequence[Any]],
                 sql: str | None = None) -> None:
        self._columns = tuple(columns)
        self._rows = [tuple(row) for row in rows]
        self.sql = sql
        self._position = -1
        self._was_null = False
        self._closed = False

    @classmethod
    def from_cursor(cls, cursor: Any, sql: str | None = None) -> Self:
        """Fetch every row of the cursor's current result."""
        columns = [desc[0] for desc in cursor.description]
        return cls(columns, cursor.fetchall(), sql)

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        state = 'closed' if self._closed else f'row {self._position + 1}'
        return f'<ResultSet {len(self._rows)} rows x {len(self._columns)} columns, {state}>'

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the rows; any later read raises ResultSetClosedError."""
        self._closed = True
        self._rows = []

    def _check_open(self) -> None:
        if self._closed:
            raise ResultSetClosedError('Result set was superseded by a newer execution')

    @property
    def column_names(self) -> tuple[str, ...]:
        self._check_open()
        return self._columns

    def rows_count(self) -> int:
        self._check_open()
        return len(self._rows)

    def column_count(self) -> int:
        self._check_open()
        return len(self._columns)

    def find_column(self, label: str) -> int:
        """Return the 1-based index of a column by name (case-insensitive).
        """
        self._check_open()
        lowered = label.lower()
        for idx, name in enumerate(self._columns, start=1):
            if name.lower() == lowered:
                return idx
        raise InvalidColumnError(f'No column named {label!r}')

    def next(self) -> bool:
        """Advance to the next row; False once the rows are exhausted."""
        self._check_open()
        if self._position < len(self._rows):
            self._position += 1
        return self._position < len(self._rows)

    def get_row(self) -> tuple:
        """Return the raw values of the current row."""
        self._check_open()
        if not 0 <= self._position < len(self._rows):
            raise QueryError('No current row; call next() first')
        return self._rows[self._position]

    def was_null(self) -> bool:
        """Whether the last value read was SQL NULL."""
        return self._was_null

    def _raw(self, idx: int) -> Any:
        row = self.get_row()
        if not 1 <= idx <= len(row):
            raise InvalidColumnError(f'Column index {idx} out of range (1..{len(row)})')
        value = row[idx - 1]
        self._was_null = value is None
        return value

    def get_double(self, idx: int) -> float:
        value = self._raw(idx)
        if value is None:
            return 0.0
        try:
            return float(value)
        except (TypeError, ValueError):
            raise TypeConversionError(f'Column {idx}: cannot read {value!r} as double')

    def _get_integer(self, idx: int) -> int:
        value = self._raw(idx)
        if value is None:
            return 0
        if isinstance(value, Integral):
            return int(value)
        if isinstance(value, (Real, Decimal)):
            try:
                return int(value)
            except (OverflowError, ValueError):
                raise TypeConversionError(f'Column {idx}: cannot read {value!r} as integer')
        if isinstance(value, (str, bytes)):
            try:
                return int(value)
            except ValueError:
                raise TypeConversionError(f'Column {idx}: cannot read {value!r} as integer')
        raise TypeConversionError(f'Column {idx}: cannot read {type(value).__name__} as integer')

    def get_int64(self, idx: int) -> int:
        value = self._get_integer(idx)
        if not INT64_MIN <= value <= INT64_MAX:
            raise TypeConversionError(f'Column {idx}: {value} out of signed 64-bit range')
        return value

    def get_uint64(self, idx: int) -> int:
        value = self._get_integer(idx)
        if not 0 <= value <= UINT64_MAX:
            raise TypeConversionError(f'Column {idx}: {value} out of unsigned 64-bit range')
        return value

    def get_string(self, idx: int) -> str:
        value = self._raw(idx)
        if value is None:
            return ''
        if isinstance(value, (bytes, bytearray, memoryview)):
            try:
                return bytes(value).decode('utf-8')
            except UnicodeDecodeError:
                raise TypeConversionError(f'Column {idx}: binary value is not valid UTF-8')
        return str(value)

    def to_frame(self) -> pd.DataFrame:
        """Copy the rows into a DataFrame (columns preserved when empty)."""
        self._check_open()
        if not self._rows:
            return pd.DataFrame(columns=list(self._columns))
        return pd.DataFrame.from_records(self._rows, columns=list(self._columns))
