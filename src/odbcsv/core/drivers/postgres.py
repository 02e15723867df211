"""PostgreSQL adapter built on psycopg v3.

Used when the connection string is a ``postgresql://`` URL. Positional
``?`` placeholders are rewritten to psycopg's ``%s`` style, and the
server describes their types when the insert target is plain SQL.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import psycopg
import psycopg.errors
from psycopg import pq
from psycopg.sql import Identifier
import sentry_sdk
import structlog

from odbcsv.core.binder import (
    count_placeholders,
    to_format_placeholders,
    to_numbered_placeholders,
)
from odbcsv.core.drivers.base import DbApiResultSet, parameter_rows
from odbcsv.core.exceptions import ConnectError, DriverExecError, TimeoutError
from odbcsv.core.models import SqlType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from odbcsv.core.buffers import BulkBuffer

# Mapping from PostgreSQL type OIDs to buffer categories.
# Unknown OIDs (json, interval, arrays, ...) are buffered as text.
_SQL_TYPES: dict[int, SqlType] = {
    16: SqlType.INTEGER,  # bool
    17: SqlType.BINARY,  # bytea
    18: SqlType.CHAR,  # "char"
    19: SqlType.CHAR,  # name
    20: SqlType.INTEGER,  # int8
    21: SqlType.INTEGER,  # int2
    23: SqlType.INTEGER,  # int4
    25: SqlType.CHAR,  # text
    26: SqlType.INTEGER,  # oid
    700: SqlType.FLOAT,  # float4
    701: SqlType.FLOAT,  # float8
    790: SqlType.NUMERIC,  # money
    1042: SqlType.CHAR,  # bpchar
    1043: SqlType.CHAR,  # varchar
    1082: SqlType.DATE,
    1083: SqlType.TIMESTAMP,  # time
    1114: SqlType.TIMESTAMP,
    1184: SqlType.TIMESTAMP,  # timestamptz
    1266: SqlType.TIMESTAMP,  # timetz
    1700: SqlType.NUMERIC,
    2950: SqlType.CHAR,  # uuid
}

_FIXED_SIZES: dict[int, int] = {
    18: 1,
    19: 63,
    2950: 36,
}


class PgResultSet(DbApiResultSet):
    driver_errors = (psycopg.Error,)

    def _sql_type(self, desc: Any) -> SqlType:
        return _SQL_TYPES.get(desc.type_code, SqlType.UNKNOWN)

    def _display_size(self, desc: Any, sql_type: SqlType) -> int:
        if desc.type_code in _FIXED_SIZES:
            return _FIXED_SIZES[desc.type_code]
        if sql_type == SqlType.BINARY:
            return 0
        if sql_type == SqlType.NUMERIC and desc.precision:
            return int(desc.precision) + 2
        return int(desc.display_size or 0)

    def col_nullable(self, column_number: int) -> bool:
        # libpq does not report nullability for result columns.
        self._column(column_number)
        return True

    def _translate_error(self, e: BaseException) -> DriverExecError:
        return _exec_error("Fetch", e)


def _diagnostic(e: BaseException) -> str:
    diag = getattr(e, "diag", None)
    primary = getattr(diag, "message_primary", None) if diag is not None else None
    return primary or str(e).strip()


def _exec_error(action: str, e: BaseException) -> DriverExecError:
    diagnostic = _diagnostic(e)
    if isinstance(e, psycopg.errors.QueryCanceled):
        return TimeoutError(f"{action} cancelled: {diagnostic}", diagnostic)
    sqlstate = getattr(e, "sqlstate", None) or ""
    return DriverExecError(f"{action} failed [{sqlstate}]: {diagnostic}", diagnostic)


def _execute(cursor: Any, sql: str) -> None:
    log = structlog.get_logger()
    log.debug("executing query", sql=sql)
    try:
        cursor.execute(sql)
    except psycopg.Error as e:
        log.error("query failed", error=str(e))
        raise _exec_error("Query", e) from e


def _check_result(action: str, result: Any) -> Any:
    if result.status != pq.ExecStatus.COMMAND_OK:
        message = (result.error_message or b"").decode(errors="replace").strip()
        raise DriverExecError(f"{action} failed: {message}", message)
    return result


class PgStatement:
    def __init__(self, connection: PgConnection, sql: str) -> None:
        self.sql = sql
        self._pg_sql = to_format_placeholders(sql)
        self._connection = connection
        self._cursor: Any = None

    def _get_cursor(self) -> Any:
        if self._cursor is None:
            self._cursor = self._connection.raw.cursor()
        return self._cursor

    def num_params(self) -> int:
        return count_placeholders(self.sql, bracket_identifiers=False)

    def describe_params(self) -> list[tuple[SqlType, int]]:
        """Parameter types as inferred by the server for this statement."""
        raw = self._connection.raw
        pgconn = raw.pgconn
        name = f"odbcsv_describe_{id(self)}".encode()
        command = to_numbered_placeholders(self.sql).encode(raw.info.encoding)
        _check_result("Prepare", pgconn.prepare(name, command))
        try:
            desc = _check_result("Describe", pgconn.describe_prepared(name))
            oids = [desc.param_type(i) for i in range(desc.nparams)]
        finally:
            pgconn.exec_(b"DEALLOCATE " + name)
        structlog.get_logger().debug("parameters described", oids=oids)
        return [
            (_SQL_TYPES.get(oid, SqlType.UNKNOWN), _FIXED_SIZES.get(oid, 0))
            for oid in oids
        ]

    def execute_query(self) -> PgResultSet:
        cursor = self._get_cursor()
        _execute(cursor, self.sql)
        return PgResultSet(cursor, self.sql)

    def execute_batch(self, bindings: Sequence[BulkBuffer], rows: int) -> int:
        log = structlog.get_logger()
        cursor = self._get_cursor()
        params = parameter_rows(bindings, rows)
        start_time = time.monotonic()
        try:
            cursor.executemany(self._pg_sql, params)
        except psycopg.Error as e:
            log.error("batch execute failed", rows=rows, error=str(e))
            raise _exec_error("Execute", e) from e
        log.debug(
            "batch sent",
            rows=rows,
            duration_ms=f"{(time.monotonic() - start_time) * 1000:.1f}",
        )
        return rows

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None


class PgConnection:
    """Autocommit psycopg connection."""

    def __init__(self, raw: Any) -> None:
        self.raw = raw

    @classmethod
    def open(cls, url: str, *, login_timeout: int = 10) -> PgConnection:
        log = structlog.get_logger()
        with sentry_sdk.start_span(op="db.connect", description="postgresql"):
            try:
                raw = psycopg.connect(
                    url,
                    autocommit=True,
                    connect_timeout=login_timeout,
                    application_name="odbcsv",
                )
            except psycopg.Error as e:
                raise ConnectError(f"Connection failed: {_diagnostic(e)}") from e
        log.debug("connected", driver="postgresql")
        return cls(raw)

    def __enter__(self) -> PgConnection:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def prepare(self, sql: str) -> PgStatement:
        return PgStatement(self, sql)

    def quote_identifier(self, name: str) -> str:
        return Identifier(name).as_string(self.raw)

    def execute_query(self, sql: str) -> PgResultSet:
        cursor = self.raw.cursor()
        try:
            _execute(cursor, sql)
        except DriverExecError:
            cursor.close()
            raise
        return PgResultSet(cursor, sql, owns_cursor=True)

    @property
    def closed(self) -> bool:
        return self.raw is None

    def close(self) -> None:
        if self.raw is not None:
            self.raw.close()
            self.raw = None
