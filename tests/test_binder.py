"""Tests for placeholder scanning and positional binding."""

import pytest

from odbcsv.core.binder import (
    PositionalBinder,
    count_placeholders,
    to_format_placeholders,
    to_numbered_placeholders,
)
from odbcsv.core.buffers import RowBatch
from odbcsv.core.exceptions import BufferConsistencyError, ParameterCountError
from odbcsv.core.models import ColumnDescriptor, SqlType
from tests.fakes import FakeConnection


def _batch(columns, capacity=4):
    return RowBatch.allocate(
        [
            ColumnDescriptor(name=f"c{i}", ordinal=i, sql_type=SqlType.CHAR, display_size=8)
            for i in range(1, columns + 1)
        ],
        capacity,
    )


@pytest.mark.unit
class TestCountPlaceholders:
    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ("INSERT INTO t VALUES (?, ?, ?)", 3),
            ("SELECT 1", 0),
            ("INSERT INTO t VALUES ('?', ?)", 1),
            ("INSERT INTO t VALUES ('it''s ?', ?)", 1),
            ('INSERT INTO "a?b" VALUES (?)', 1),
            ("INSERT INTO [odd?name] VALUES (?)", 1),
            ("INSERT INTO t VALUES (?) -- trailing ?\n", 1),
            ("INSERT INTO t /* ? ? */ VALUES (?, ?)", 2),
        ],
    )
    def test_counts_only_real_placeholders(self, sql, expected):
        assert count_placeholders(sql) == expected

    def test_unterminated_literal(self):
        assert count_placeholders("SELECT ? WHERE x = 'oops ?") == 1

    def test_array_brackets_scanned_without_bracket_identifiers(self):
        sql = "INSERT INTO t (tags) VALUES (ARRAY[?, ?])"
        assert count_placeholders(sql, bracket_identifiers=False) == 2
        assert count_placeholders(sql) == 0


@pytest.mark.unit
class TestFormatPlaceholders:
    def test_rewrites_question_marks(self):
        assert to_format_placeholders("INSERT INTO t VALUES (?, ?)") == (
            "INSERT INTO t VALUES (%s, %s)"
        )

    def test_escapes_percent(self):
        assert to_format_placeholders("SELECT ? WHERE a LIKE '50%?'") == (
            "SELECT %s WHERE a LIKE '50%%?'"
        )

    def test_array_placeholders_rewritten(self):
        assert to_format_placeholders("SELECT ARRAY[?, ?]") == "SELECT ARRAY[%s, %s]"


@pytest.mark.unit
class TestNumberedPlaceholders:
    def test_numbers_in_order(self):
        assert to_numbered_placeholders("INSERT INTO t VALUES (?, ARRAY[?], '?')") == (
            "INSERT INTO t VALUES ($1, ARRAY[$2], '?')"
        )

    def test_percent_left_alone(self):
        assert to_numbered_placeholders("SELECT ? WHERE a LIKE '50%'") == (
            "SELECT $1 WHERE a LIKE '50%'"
        )


@pytest.mark.unit
class TestPositionalBinder:
    def test_count_checked_at_construction(self):
        stmt = FakeConnection().prepare("INSERT INTO t VALUES (?, ?, ?)")
        with pytest.raises(ParameterCountError) as exc_info:
            PositionalBinder(stmt, _batch(2))
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2

    def test_binds_by_ordinal(self):
        conn = FakeConnection()
        stmt = conn.prepare("INSERT INTO t VALUES (?, ?)")
        batch = _batch(2)
        binder = PositionalBinder(stmt, batch)
        batch.columns[0].from_text(0, "first")
        batch.columns[1].from_text(0, "second")
        batch.rows_filled = 1
        binder.bind()
        assert binder.bindings[1] is batch.columns[0]
        assert binder.bindings[2] is batch.columns[1]

        assert binder.execute() == 1
        assert conn.executions == [("INSERT INTO t VALUES (?, ?)", [("first", "second")])]
        assert binder.executions == 1

    def test_execute_requires_bind(self):
        stmt = FakeConnection().prepare("INSERT INTO t VALUES (?)")
        binder = PositionalBinder(stmt, _batch(1))
        with pytest.raises(BufferConsistencyError, match="before the batch was bound"):
            binder.execute()

    def test_rows_changed_after_bind(self):
        stmt = FakeConnection().prepare("INSERT INTO t VALUES (?)")
        batch = _batch(1)
        binder = PositionalBinder(stmt, batch)
        batch.columns[0].from_text(0, "a")
        batch.rows_filled = 1
        binder.bind()
        batch.columns[0].from_text(1, "b")
        batch.rows_filled = 2
        with pytest.raises(BufferConsistencyError, match="bound with 1 rows"):
            binder.execute()

    def test_rebind_each_batch(self):
        conn = FakeConnection()
        stmt = conn.prepare("INSERT INTO t VALUES (?)")
        batch = _batch(1, capacity=1)
        binder = PositionalBinder(stmt, batch)
        for value in ("a", "b"):
            batch.reset()
            batch.columns[0].from_text(0, value)
            batch.rows_filled = 1
            binder.bind()
            binder.execute()
        assert conn.inserted == [("a",), ("b",)]
        assert len(conn.statements) == 1
