"""Query -> CSV -> insert reproduces the source rows."""

import datetime as dt
import io
from decimal import Decimal

import pytest

from odbcsv.core.csv_codec import CsvSink, CsvSource
from odbcsv.core.models import SqlType
from odbcsv.core.pipeline import ReadPipeline, WritePipeline
from tests.fakes import FakeColumn, FakeConnection, FakeTable

ROWS = [
    ("1", "plain", "2024-01-01"),
    ("2", "comma, inside", "2024-01-02"),
    ("3", 'quote " inside', None),
    ("4", "line\nbreak", "2024-01-04"),
    ("5", "ünïcödé ✓", "2024-01-05"),
    ("6", None, "2024-01-06"),
]


@pytest.mark.unit
@pytest.mark.parametrize("encoding", ["utf-8", "utf-16-le"])
def test_round_trip_preserves_values(encoding):
    source = FakeConnection(
        results={
            "SELECT * FROM src": FakeTable(
                [
                    FakeColumn("id", SqlType.CHAR, 4),
                    FakeColumn("label", SqlType.WCHAR, 20),
                    FakeColumn("day", SqlType.CHAR, 10),
                ],
                ROWS,
            )
        }
    )
    out = io.StringIO()
    ReadPipeline(
        source, "SELECT * FROM src", CsvSink(out, null_text="\\N"), batch_size=4,
        encoding=encoding,
    ).run()

    target = FakeConnection()
    csv_source = CsvSource(io.StringIO(out.getvalue(), newline=""))
    summary = WritePipeline(
        target, "INSERT INTO dst VALUES (?, ?, ?)", batch_size=4, null_text="\\N",
        encoding=encoding,
    ).run(csv_source, column_count=csv_source.column_count)

    assert csv_source.header == ["id", "label", "day"]
    assert summary.rows == len(ROWS)
    assert target.inserted == ROWS


TYPED_COLUMNS = [
    FakeColumn("id", SqlType.INTEGER, 11),
    FakeColumn("amount", SqlType.NUMERIC, 12),
    FakeColumn("ratio", SqlType.FLOAT, 24),
    FakeColumn("stamp", SqlType.TIMESTAMP, 26),
    FakeColumn("blob", SqlType.BINARY, 8),
    FakeColumn("label", SqlType.WCHAR, 20),
]

TYPED_ROWS = [
    (
        1,
        Decimal("12.50"),
        2.5,
        dt.datetime(2024, 1, 2, 3, 4, 5, 123456),
        b"\xde\xad\xbe\xef",
        "first",
    ),
    (
        -7,
        Decimal("-0.01"),
        1e-05,
        dt.datetime(1999, 12, 31, 23, 59, 59),
        b"\x00",
        "ü",
    ),
    (3, None, None, None, None, None),
]


def _dump(connection, sql):
    out = io.StringIO()
    ReadPipeline(connection, sql, CsvSink(out, null_text="\\N"), batch_size=2).run()
    return out.getvalue()


@pytest.mark.unit
def test_typed_round_trip_into_sql_target():
    source = FakeConnection(
        results={"SELECT * FROM src": FakeTable(TYPED_COLUMNS, TYPED_ROWS)}
    )
    exported = _dump(source, "SELECT * FROM src")

    target = FakeConnection(tables={"dst": FakeTable(list(TYPED_COLUMNS))})
    csv_source = CsvSource(io.StringIO(exported, newline=""))
    WritePipeline(
        target, "INSERT INTO dst VALUES (?, ?, ?, ?, ?, ?)", batch_size=2,
        null_text="\\N",
    ).run(csv_source, column_count=csv_source.column_count)

    assert target.tables["dst"].rows == TYPED_ROWS
    assert target.inserted[0][4] == b"\xde\xad\xbe\xef"
    assert _dump(target, "SELECT * FROM dst") == exported
