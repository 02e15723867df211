"""Positional parameter binding.

CSV column *i* binds to placeholder *i*. SQL is otherwise opaque; it is
only scanned to count ``?`` placeholders outside literals and comments.
Square brackets quote identifiers in ODBC dialects (SQL Server, Access)
but are array syntax in PostgreSQL, so scanning them is opt-out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from odbcsv.core.exceptions import BufferConsistencyError, ParameterCountError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from odbcsv.core.buffers import BulkBuffer, RowBatch
    from odbcsv.core.drivers.base import Statement


def _scan(
    sql: str, *, bracket_identifiers: bool = True
) -> Iterator[tuple[int, str]]:
    """Yield (index, char) for characters outside quotes and comments."""
    i = 0
    n = len(sql)
    while i < n:
        ch = sql[i]
        if ch in ("'", '"'):
            # Doubled quote is an escaped quote inside the literal.
            i += 1
            while i < n:
                if sql[i] == ch:
                    if i + 1 < n and sql[i + 1] == ch:
                        i += 2
                        continue
                    break
                i += 1
            i += 1
            continue
        if ch == "[" and bracket_identifiers:
            end = sql.find("]", i + 1)
            i = n if end < 0 else end + 1
            continue
        if ch == "-" and sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end < 0 else end + 1
            continue
        if ch == "/" and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end < 0 else end + 2
            continue
        yield i, ch
        i += 1


def count_placeholders(sql: str, *, bracket_identifiers: bool = True) -> int:
    return sum(
        1
        for _, ch in _scan(sql, bracket_identifiers=bracket_identifiers)
        if ch == "?"
    )


def _rewrite(
    sql: str, placeholder: Callable[[int], str], *, escape_percent: bool
) -> str:
    code = {i for i, ch in _scan(sql, bracket_identifiers=False) if ch == "?"}
    out: list[str] = []
    ordinal = 0
    for i, ch in enumerate(sql):
        if i in code:
            ordinal += 1
            out.append(placeholder(ordinal))
        elif ch == "%" and escape_percent:
            out.append("%%")
        else:
            out.append(ch)
    return "".join(out)


def to_format_placeholders(sql: str) -> str:
    """Rewrite ``?`` placeholders as ``%s`` and escape literal ``%``.

    Used for PostgreSQL through psycopg, whose paramstyle is ``format``;
    ``%`` inside quoted literals is escaped too because psycopg
    interpolates the whole string.
    """
    return _rewrite(sql, lambda _: "%s", escape_percent=True)


def to_numbered_placeholders(sql: str) -> str:
    """Rewrite ``?`` placeholders as PostgreSQL's ``$1``, ``$2``, ..."""
    return _rewrite(sql, lambda n: f"${n}", escape_percent=False)


class PositionalBinder:
    """Binds a RowBatch's buffers to a prepared statement by ordinal.

    Binding happens once per batch and every execute reuses the same
    statement handle.
    """

    def __init__(self, statement: Statement, batch: RowBatch) -> None:
        expected = statement.num_params()
        if expected != len(batch.columns):
            raise ParameterCountError(expected, len(batch.columns))
        self.statement = statement
        self.batch = batch
        self.bindings: dict[int, BulkBuffer] = {}
        self.executions = 0
        self._bound_rows: int | None = None

    def bind(self) -> None:
        """Bind every column buffer at its 1-based placeholder position."""
        self.bindings = {
            ordinal: buf for ordinal, buf in enumerate(self.batch.columns, start=1)
        }
        self._bound_rows = self.batch.rows_filled

    def execute(self) -> int:
        """Execute the bound batch as one round trip."""
        log = structlog.get_logger()
        rows = self.batch.rows_filled
        if self._bound_rows is None:
            raise BufferConsistencyError("Execute requested before the batch was bound")
        if self._bound_rows != rows:
            msg = f"Batch was bound with {self._bound_rows} rows but holds {rows}"
            raise BufferConsistencyError(msg)

        ordered = [self.bindings[o] for o in range(1, len(self.bindings) + 1)]
        affected = self.statement.execute_batch(ordered, rows)
        self.executions += 1
        self._bound_rows = None
        log.debug("batch executed", batch=self.executions, rows=rows)
        return affected
