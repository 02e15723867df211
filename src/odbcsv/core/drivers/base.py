"""Driver protocols consumed by the transfer engine.

A Connection prepares Statements; executing a query Statement yields a
ResultSet that answers per-column attribute calls and fills RowBatches.
Adapters for concrete DB-API drivers share DbApiResultSet.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import sentry_sdk
import structlog

from odbcsv.core.exceptions import BufferConsistencyError, DriverExecError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from odbcsv.core.buffers import BulkBuffer, RowBatch
    from odbcsv.core.models import SqlType


@runtime_checkable
class ResultSet(Protocol):
    def num_result_cols(self) -> int: ...

    def col_name(self, column_number: int) -> str: ...

    def col_display_size(self, column_number: int) -> int: ...

    def col_data_type(self, column_number: int) -> SqlType: ...

    def col_nullable(self, column_number: int) -> bool: ...

    def fetch_into(self, batch: RowBatch) -> int:
        """Fill up to ``batch.capacity_rows`` rows; 0 means end of result set."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class Statement(Protocol):
    sql: str

    def num_params(self) -> int: ...

    def describe_params(self) -> list[tuple[SqlType, int]] | None:
        """(type, display size) per placeholder, or None if the driver cannot tell."""
        ...

    def execute_query(self) -> ResultSet: ...

    def execute_batch(self, bindings: Sequence[BulkBuffer], rows: int) -> int:
        """Execute once with ``rows`` parameter sets taken from ``bindings``.

        ``bindings[i]`` is the buffer bound to placeholder ``i + 1``.
        """
        ...

    def close(self) -> None: ...


@runtime_checkable
class Connection(Protocol):
    def prepare(self, sql: str) -> Statement: ...

    def execute_query(self, sql: str) -> ResultSet: ...

    def quote_identifier(self, name: str) -> str: ...

    def close(self) -> None: ...

    def __enter__(self) -> Connection: ...

    def __exit__(self, *exc: object) -> None: ...


def parameter_rows(bindings: Sequence[BulkBuffer], rows: int) -> list[tuple[Any, ...]]:
    """Parameter sets for one execute, read column-wise out of the buffers."""
    columns = [[buf.to_param(r) for r in range(rows)] for buf in bindings]
    return list(zip(*columns, strict=True)) if columns else [() for _ in range(rows)]


class DbApiResultSet:
    """ResultSet over a DB-API cursor whose ``description`` is already set.

    Subclasses map a description entry to an SqlType and a display size
    and declare which driver exceptions mean a failed round trip.
    """

    driver_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, cursor: Any, sql: str = "", *, owns_cursor: bool = False) -> None:
        self._cursor = cursor
        self._sql = sql
        self._owns_cursor = owns_cursor
        self._description: list[Any] = list(cursor.description or [])

    def _column(self, column_number: int) -> Any:
        if not 1 <= column_number <= len(self._description):
            msg = (
                f"Column {column_number} requested but the driver described "
                f"{len(self._description)} column(s)"
            )
            raise IndexError(msg)
        return self._description[column_number - 1]

    def num_result_cols(self) -> int:
        return len(self._description)

    def col_name(self, column_number: int) -> str:
        return str(self._column(column_number)[0])

    def col_data_type(self, column_number: int) -> SqlType:
        return self._sql_type(self._column(column_number))

    def col_display_size(self, column_number: int) -> int:
        desc = self._column(column_number)
        return self._display_size(desc, self._sql_type(desc))

    def col_nullable(self, column_number: int) -> bool:
        null_ok = self._column(column_number)[6]
        return True if null_ok is None else bool(null_ok)

    def _sql_type(self, desc: Any) -> SqlType:
        raise NotImplementedError

    def _display_size(self, desc: Any, sql_type: SqlType) -> int:
        raise NotImplementedError

    def _translate_error(self, e: BaseException) -> DriverExecError:
        return DriverExecError(f"Fetch failed: {e}", diagnostic=str(e))

    def fetch_into(self, batch: RowBatch) -> int:
        log = structlog.get_logger()
        batch.reset()
        with sentry_sdk.start_span(op="db.fetch", description=self._sql[:100]) as span:
            start_time = time.monotonic()
            try:
                rows = self._cursor.fetchmany(batch.capacity_rows)
            except self.driver_errors as e:
                log.error("fetch failed", error=str(e))
                raise self._translate_error(e) from e

            width = len(batch.columns)
            for row_index, row in enumerate(rows):
                if len(row) != width:
                    msg = f"Driver returned {len(row)} values for a {width}-column row"
                    raise BufferConsistencyError(msg)
                for buf, value in zip(batch.columns, row, strict=True):
                    buf.store_value(row_index, value)
            batch.rows_filled = len(rows)

            duration_ms = (time.monotonic() - start_time) * 1000
            span.set_data("row_count", len(rows))
            span.set_data("duration_ms", duration_ms)
        return len(rows)

    def close(self) -> None:
        """Release the result set; a statement-owned cursor stays open."""
        if self._owns_cursor:
            self._cursor.close()
