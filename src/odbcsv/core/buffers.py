"""Fixed-capacity column buffers reused across batches.

A BulkBuffer holds one column for up to ``capacity_rows`` rows: a single
contiguous ``bytearray`` of ``capacity_rows * cell_byte_width`` bytes and
a parallel indicator array. Indicator values:

- ``>= 0``: length in bytes of the value stored in the cell
- ``NULL_DATA``: the value is NULL
- ``NO_DATA``: nothing was written to the cell since the last reset

Cells are overwritten in place; nothing is allocated per row.
"""

from __future__ import annotations

from array import array
from collections.abc import Sequence
from typing import Any

from odbcsv.core.conversions import DEFAULT_MAX_TEXT_WIDTH, cell_byte_width, rule_for
from odbcsv.core.exceptions import (
    BufferConsistencyError,
    EncodingError,
    ValueTooLargeError,
)
from odbcsv.core.models import ColumnDescriptor

NULL_DATA = -1
NO_DATA = -2


class BulkBuffer:
    """One column's values for a whole batch."""

    __slots__ = (
        "_blank",
        "_rule",
        "_view",
        "capacity_rows",
        "cell_byte_width",
        "data",
        "descriptor",
        "encoding",
        "indicator",
        "terminated",
    )

    def __init__(
        self,
        descriptor: ColumnDescriptor,
        capacity_rows: int,
        cell_byte_width: int,
        *,
        terminated: bool = True,
        encoding: str = "utf-8",
    ) -> None:
        if capacity_rows <= 0:
            msg = f"Buffer for column '{descriptor.name}' needs a positive row capacity"
            raise BufferConsistencyError(msg)
        if cell_byte_width <= (1 if terminated else 0):
            msg = f"Buffer for column '{descriptor.name}' has no room for data"
            raise BufferConsistencyError(msg)

        self.descriptor = descriptor
        self.capacity_rows = capacity_rows
        self.cell_byte_width = cell_byte_width
        self.terminated = terminated
        self.encoding = encoding
        self._rule = rule_for(descriptor.sql_type)
        self.data = bytearray(capacity_rows * cell_byte_width)
        self._view = memoryview(self.data)
        self._blank = array("q", [NO_DATA]) * capacity_rows
        self.indicator = array("q", self._blank)

    def __repr__(self) -> str:
        return (
            f"BulkBuffer(column={self.descriptor.name!r}, "
            f"capacity_rows={self.capacity_rows}, "
            f"cell_byte_width={self.cell_byte_width})"
        )

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def max_value_bytes(self) -> int:
        """Largest value in bytes a cell holds without truncation."""
        return self.cell_byte_width - (1 if self.terminated else 0)

    @property
    def nbytes(self) -> int:
        return len(self.data) + self.indicator.itemsize * len(self.indicator)

    def clear(self) -> None:
        """Mark every cell as holding no data."""
        self.indicator[:] = self._blank

    def _check_row(self, row_index: int) -> None:
        if not 0 <= row_index < self.capacity_rows:
            msg = (
                f"Row index {row_index} outside buffer of {self.capacity_rows} "
                f"rows for column '{self.name}'"
            )
            raise BufferConsistencyError(msg)

    def store(self, row_index: int, raw: bytes | None) -> None:
        """Write driver-produced bytes into a cell.

        Like a C driver, an oversized value is cut to the cell while the
        indicator keeps the full length, so the loss is detected on read.
        """
        self._check_row(row_index)
        if raw is None:
            self.indicator[row_index] = NULL_DATA
            return
        length = len(raw)
        kept = min(length, self.max_value_bytes)
        offset = row_index * self.cell_byte_width
        self._view[offset : offset + kept] = raw[:kept]
        if self.terminated:
            self.data[offset + kept] = 0
        self.indicator[row_index] = length

    def store_value(self, row_index: int, value: Any) -> None:
        """Render a typed driver value as text and store its encoded bytes."""
        if value is None:
            self.store(row_index, None)
            return
        self.store(row_index, self._encode(self._rule.render(value), row_index))

    def to_text(self, row_index: int) -> str | None:
        """Decode the cell at ``row_index``; ``None`` is the NULL marker."""
        self._check_row(row_index)
        length = self.indicator[row_index]
        if length == NULL_DATA:
            return None
        if length < 0:
            msg = (
                f"Cell at row {row_index + 1} of column '{self.name}' "
                "was read before any data was written to it"
            )
            raise BufferConsistencyError(msg)
        if length > self.max_value_bytes:
            raise ValueTooLargeError(
                self.name, row_index + 1, length, self.max_value_bytes
            )
        offset = row_index * self.cell_byte_width
        try:
            return str(self._view[offset : offset + length], self.encoding)
        except UnicodeDecodeError as e:
            msg = (
                f"Value in column '{self.name}' at row {row_index + 1} "
                f"is not valid {self.encoding}: {e.reason}"
            )
            raise EncodingError(msg) from e

    def from_text(self, row_index: int, text: str | None) -> None:
        """Write a CSV field into the cell; oversized values are rejected."""
        self._check_row(row_index)
        if text is None:
            self.indicator[row_index] = NULL_DATA
            return
        raw = self._encode(text, row_index)
        if len(raw) > self.max_value_bytes:
            raise ValueTooLargeError(
                self.name, row_index + 1, len(raw), self.max_value_bytes
            )
        self.store(row_index, raw)

    def to_param(self, row_index: int) -> Any:
        """Value handed to the driver for this cell when executing."""
        text = self.to_text(row_index)
        if text is None:
            return None
        return self._rule.to_param(text)

    def _encode(self, text: str, row_index: int) -> bytes:
        try:
            return text.encode(self.encoding)
        except UnicodeEncodeError as e:
            msg = (
                f"Value in column '{self.name}' at row {row_index + 1} "
                f"cannot be encoded as {self.encoding}: {e.reason}"
            )
            raise EncodingError(msg) from e


def allocate(
    descriptor: ColumnDescriptor,
    capacity_rows: int,
    *,
    encoding: str = "utf-8",
    max_text_width: int = DEFAULT_MAX_TEXT_WIDTH,
) -> BulkBuffer:
    """Create a buffer wide enough for any value ``descriptor`` can report."""
    rule = rule_for(descriptor.sql_type)
    width = cell_byte_width(
        descriptor, encoding=encoding, max_text_width=max_text_width
    )
    return BulkBuffer(
        descriptor,
        capacity_rows,
        width,
        terminated=rule.terminated,
        encoding=encoding,
    )


class RowBatch:
    """Buffers for every column of one result set or parameter set."""

    def __init__(self, columns: Sequence[BulkBuffer]) -> None:
        if not columns:
            raise BufferConsistencyError("A row batch needs at least one column")
        capacities = {buf.capacity_rows for buf in columns}
        if len(capacities) != 1:
            msg = f"Column buffers disagree on row capacity: {sorted(capacities)}"
            raise BufferConsistencyError(msg)
        self.columns: list[BulkBuffer] = list(columns)
        self.capacity_rows: int = capacities.pop()
        self._rows_filled = 0

    @classmethod
    def allocate(
        cls,
        descriptors: Sequence[ColumnDescriptor],
        capacity_rows: int,
        *,
        encoding: str = "utf-8",
        max_text_width: int = DEFAULT_MAX_TEXT_WIDTH,
    ) -> RowBatch:
        return cls(
            [
                allocate(
                    d,
                    capacity_rows,
                    encoding=encoding,
                    max_text_width=max_text_width,
                )
                for d in descriptors
            ]
        )

    @property
    def rows_filled(self) -> int:
        return self._rows_filled

    @rows_filled.setter
    def rows_filled(self, value: int) -> None:
        if not 0 <= value <= self.capacity_rows:
            msg = f"rows_filled={value} outside 0..{self.capacity_rows}"
            raise BufferConsistencyError(msg)
        self._rows_filled = value

    @property
    def descriptors(self) -> list[ColumnDescriptor]:
        return [buf.descriptor for buf in self.columns]

    @property
    def nbytes(self) -> int:
        return sum(buf.nbytes for buf in self.columns)

    def reset(self) -> None:
        """Start a new fetch/bind cycle."""
        self._rows_filled = 0
        for buf in self.columns:
            buf.clear()

    def row_text(self, row_index: int) -> list[str | None]:
        """Text of every column for one populated row."""
        if not 0 <= row_index < self._rows_filled:
            msg = f"Row {row_index} requested but batch holds {self._rows_filled} rows"
            raise BufferConsistencyError(msg)
        return [buf.to_text(row_index) for buf in self.columns]
