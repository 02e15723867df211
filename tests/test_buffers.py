"""Tests for BulkBuffer and RowBatch."""

import datetime as dt

import pytest

from odbcsv.core.buffers import NO_DATA, NULL_DATA, BulkBuffer, RowBatch, allocate
from odbcsv.core.exceptions import (
    BufferConsistencyError,
    EncodingError,
    ValueTooLargeError,
)
from odbcsv.core.models import ColumnDescriptor, SqlType


def _desc(name="c", sql_type=SqlType.CHAR, display_size=5, ordinal=1):
    return ColumnDescriptor(
        name=name, ordinal=ordinal, sql_type=sql_type, display_size=display_size
    )


@pytest.mark.unit
class TestBulkBufferLayout:
    def test_contiguous_storage(self):
        buf = BulkBuffer(_desc(), capacity_rows=100, cell_byte_width=8)
        assert len(buf.data) == 800
        assert len(buf.indicator) == 100
        assert buf.max_value_bytes == 7

    def test_unterminated_cell_uses_full_width(self):
        buf = BulkBuffer(_desc(), 10, 8, terminated=False)
        assert buf.max_value_bytes == 8

    def test_starts_with_no_data(self):
        buf = BulkBuffer(_desc(), 3, 8)
        assert list(buf.indicator) == [NO_DATA] * 3

    def test_rejects_zero_capacity(self):
        with pytest.raises(BufferConsistencyError, match="positive row capacity"):
            BulkBuffer(_desc(), 0, 8)

    def test_rejects_cell_without_room(self):
        with pytest.raises(BufferConsistencyError, match="no room"):
            BulkBuffer(_desc(), 1, 1)

    def test_allocate_uses_type_rule(self):
        buf = allocate(_desc(sql_type=SqlType.INTEGER), 50)
        assert buf.cell_byte_width == 21
        assert buf.terminated is True
        binary = allocate(_desc(sql_type=SqlType.BINARY, display_size=8), 50)
        assert binary.cell_byte_width == 8
        assert binary.terminated is False


@pytest.mark.unit
class TestBulkBufferCells:
    def test_text_round_trip(self):
        buf = BulkBuffer(_desc(), 4, 8)
        buf.from_text(2, "héllo")
        assert buf.indicator[2] == 6
        assert buf.to_text(2) == "héllo"

    def test_empty_string_is_not_null(self):
        buf = BulkBuffer(_desc(), 2, 8)
        buf.from_text(0, "")
        buf.from_text(1, None)
        assert buf.to_text(0) == ""
        assert buf.indicator[1] == NULL_DATA
        assert buf.to_text(1) is None

    def test_cells_do_not_bleed(self):
        buf = BulkBuffer(_desc(), 2, 4)
        buf.from_text(0, "abc")
        buf.from_text(1, "x")
        assert buf.to_text(0) == "abc"
        assert buf.to_text(1) == "x"

    def test_store_value_renders(self):
        buf = allocate(_desc(sql_type=SqlType.TIMESTAMP), 1)
        buf.store_value(0, dt.datetime(2024, 5, 6, 7, 8, 9))
        assert buf.to_text(0) == "2024-05-06 07:08:09"

    def test_value_exactly_at_limit(self):
        buf = BulkBuffer(_desc(), 1, 6)
        buf.from_text(0, "12345")
        assert buf.to_text(0) == "12345"

    def test_oversized_input_rejected(self):
        buf = BulkBuffer(_desc(name="city"), 3, 6)
        with pytest.raises(ValueTooLargeError) as exc_info:
            buf.from_text(1, "123456")
        err = exc_info.value
        assert (err.column, err.row, err.size, err.limit) == ("city", 2, 6, 5)

    def test_driver_truncation_detected_on_read(self):
        buf = BulkBuffer(_desc(name="note"), 1, 4)
        buf.store(0, b"abcdef")
        assert buf.indicator[0] == 6
        with pytest.raises(ValueTooLargeError) as exc_info:
            buf.to_text(0)
        assert exc_info.value.size == 6
        assert exc_info.value.limit == 3

    def test_unwritten_cell_is_a_defect(self):
        buf = BulkBuffer(_desc(), 1, 4)
        with pytest.raises(BufferConsistencyError, match="before any data"):
            buf.to_text(0)

    def test_row_out_of_range(self):
        buf = BulkBuffer(_desc(), 2, 4)
        with pytest.raises(BufferConsistencyError, match="outside buffer"):
            buf.from_text(2, "a")

    def test_invalid_bytes_for_encoding(self):
        buf = BulkBuffer(_desc(), 1, 8)
        buf.store(0, b"\xff\xfe")
        with pytest.raises(EncodingError, match="not valid utf-8"):
            buf.to_text(0)

    def test_unencodable_text(self):
        buf = BulkBuffer(_desc(), 1, 8, encoding="ascii")
        with pytest.raises(EncodingError, match="cannot be encoded as ascii"):
            buf.from_text(0, "é")

    def test_clear_resets_indicators(self):
        buf = BulkBuffer(_desc(), 2, 4)
        buf.from_text(0, "a")
        buf.from_text(1, None)
        buf.clear()
        assert list(buf.indicator) == [NO_DATA, NO_DATA]

    def test_binary_param(self):
        buf = allocate(_desc(sql_type=SqlType.BINARY, display_size=6), 1)
        buf.from_text(0, "0A0B0C")
        assert buf.to_param(0) == b"\n\x0b\x0c"

    def test_null_param(self):
        buf = BulkBuffer(_desc(), 1, 4)
        buf.from_text(0, None)
        assert buf.to_param(0) is None


@pytest.mark.unit
class TestRowBatch:
    def _batch(self, capacity=3):
        return RowBatch.allocate(
            [_desc("a", ordinal=1), _desc("b", SqlType.INTEGER, ordinal=2)], capacity
        )

    def test_allocate(self):
        batch = self._batch()
        assert batch.capacity_rows == 3
        assert [d.name for d in batch.descriptors] == ["a", "b"]
        assert batch.rows_filled == 0
        assert batch.nbytes == sum(buf.nbytes for buf in batch.columns)

    def test_capacity_mismatch(self):
        with pytest.raises(BufferConsistencyError, match="disagree"):
            RowBatch([BulkBuffer(_desc(), 2, 4), BulkBuffer(_desc(), 3, 4)])

    def test_empty_batch(self):
        with pytest.raises(BufferConsistencyError):
            RowBatch([])

    def test_rows_filled_bounds(self):
        batch = self._batch()
        batch.rows_filled = 3
        with pytest.raises(BufferConsistencyError, match="outside"):
            batch.rows_filled = 4

    def test_row_text(self):
        batch = self._batch()
        batch.columns[0].from_text(0, "x")
        batch.columns[1].store_value(0, 7)
        batch.rows_filled = 1
        assert batch.row_text(0) == ["x", "7"]

    def test_row_text_beyond_filled(self):
        batch = self._batch()
        batch.rows_filled = 1
        with pytest.raises(BufferConsistencyError, match="holds 1 rows"):
            batch.row_text(1)

    def test_reset(self):
        batch = self._batch()
        batch.columns[0].from_text(0, "x")
        batch.rows_filled = 1
        batch.reset()
        assert batch.rows_filled == 0
        assert batch.columns[0].indicator[0] == NO_DATA

    def test_buffers_reused_across_resets(self):
        batch = self._batch()
        storage = [id(buf.data) for buf in batch.columns]
        batch.reset()
        assert [id(buf.data) for buf in batch.columns] == storage
