"""ODBC adapter built on pyodbc.

Statements keep one cursor for their whole life so repeated executes of
the same SQL reuse the driver's prepared handle. Inserts use
``fast_executemany`` so each batch is sent as parameter arrays.
"""

from __future__ import annotations

import datetime as dt
import decimal
import struct
import time
import uuid
from typing import TYPE_CHECKING, Any

import pyodbc
import sentry_sdk
import structlog

from odbcsv.core.binder import count_placeholders
from odbcsv.core.drivers.base import DbApiResultSet, parameter_rows
from odbcsv.core.environment import get_environment
from odbcsv.core.exceptions import ConnectError, DriverExecError, TimeoutError
from odbcsv.core.models import SqlType
from odbcsv.core.resolver import quote_identifier

if TYPE_CHECKING:
    from collections.abc import Sequence

    from odbcsv.core.buffers import BulkBuffer

# pyodbc describes columns with the Python type it will return.
_SQL_TYPES: dict[type, SqlType] = {
    str: SqlType.WCHAR,
    bool: SqlType.INTEGER,
    int: SqlType.INTEGER,
    float: SqlType.FLOAT,
    decimal.Decimal: SqlType.NUMERIC,
    dt.date: SqlType.DATE,
    dt.datetime: SqlType.TIMESTAMP,
    dt.time: SqlType.TIMESTAMP,
    bytes: SqlType.BINARY,
    bytearray: SqlType.BINARY,
    uuid.UUID: SqlType.CHAR,
}

_UUID_TEXT_WIDTH = 36

# SQLSTATEs for statement and login timeouts.
_TIMEOUT_STATES = ("HYT00", "HYT01")

# SQL Server types pyodbc cannot return natively.
SQL_SS_UDT = -151  # geography, geometry, hierarchyid
SQL_SS_TIMESTAMPOFFSET = -155  # datetimeoffset

_DATETIMEOFFSET = struct.Struct("<6hI2h")


def datetimeoffset_text(raw: bytes | None) -> str | None:
    """Render SQL Server's SQL_SS_TIMESTAMPOFFSET_STRUCT as ISO text."""
    if raw is None:
        return None
    year, month, day, hour, minute, second, fraction, tz_hour, tz_minute = (
        _DATETIMEOFFSET.unpack(raw)
    )
    sign = "-" if tz_hour < 0 or tz_minute < 0 else "+"
    return (
        f"{year:04d}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}:{second:02d}"
        f".{fraction // 100:07d} {sign}{abs(tz_hour):02d}:{abs(tz_minute):02d}"
    )


def hex_text(raw: bytes | None) -> str | None:
    return None if raw is None else raw.hex().upper()


# Registered on every connection; the converters receive the raw bytes.
OUTPUT_CONVERTERS: dict[int, Any] = {
    SQL_SS_TIMESTAMPOFFSET: datetimeoffset_text,
    SQL_SS_UDT: hex_text,
}


def _sqlstate(e: BaseException) -> str:
    args = getattr(e, "args", ())
    return str(args[0]) if args else ""


def _diagnostic(e: BaseException) -> str:
    args = getattr(e, "args", ())
    return str(args[1]) if len(args) > 1 else str(e)


def _exec_error(action: str, e: BaseException) -> DriverExecError:
    state = _sqlstate(e)
    diagnostic = _diagnostic(e)
    if state in _TIMEOUT_STATES:
        return TimeoutError(f"{action} timed out [{state}]: {diagnostic}", diagnostic)
    return DriverExecError(f"{action} failed [{state}]: {diagnostic}", diagnostic)


def _odbc_attribute(key: str, value: str) -> str:
    if any(ch in value for ch in ";{}") or value != value.strip():
        value = "{" + value.replace("}", "}}") + "}"
    return f"{key}={value}"


def build_connection_string(
    dsn: str, user: str | None = None, password: str | None = None
) -> str:
    parts = [_odbc_attribute("DSN", dsn)]
    if user is not None:
        parts.append(_odbc_attribute("UID", user))
    if password is not None:
        parts.append(_odbc_attribute("PWD", password))
    return ";".join(parts)


class OdbcResultSet(DbApiResultSet):
    driver_errors = (pyodbc.Error,)

    def _sql_type(self, desc: Any) -> SqlType:
        return _SQL_TYPES.get(desc[1], SqlType.UNKNOWN)

    def _display_size(self, desc: Any, sql_type: SqlType) -> int:
        # pyodbc leaves display_size unset; internal_size is the column size.
        _, _, display_size, internal_size, precision, _, _ = desc
        if display_size:
            return int(display_size)
        if sql_type == SqlType.BINARY:
            return 2 * int(internal_size or 0)
        if sql_type == SqlType.NUMERIC:
            return int(precision or 0) + 2
        if desc[1] is uuid.UUID:
            return _UUID_TEXT_WIDTH
        return int(internal_size or 0)

    def _translate_error(self, e: BaseException) -> DriverExecError:
        return _exec_error("Fetch", e)


def _execute(cursor: Any, sql: str) -> None:
    log = structlog.get_logger()
    log.debug("executing query", sql=sql)
    try:
        cursor.execute(sql)
    except pyodbc.Error as e:
        log.error("query failed", error=str(e))
        raise _exec_error("Query", e) from e


class OdbcStatement:
    """Prepared pyodbc statement with positional ``?`` parameters."""

    def __init__(self, connection: OdbcConnection, sql: str) -> None:
        self.sql = sql
        self._connection = connection
        self._cursor: Any = None

    def _get_cursor(self) -> Any:
        if self._cursor is None:
            self._cursor = self._connection.raw.cursor()
        return self._cursor

    def num_params(self) -> int:
        return count_placeholders(self.sql)

    def describe_params(self) -> None:
        # pyodbc keeps SQLDescribeParam to itself; see _input_size.
        return None

    def execute_query(self) -> OdbcResultSet:
        cursor = self._get_cursor()
        _execute(cursor, self.sql)
        return OdbcResultSet(cursor, self.sql)

    def execute_batch(self, bindings: Sequence[BulkBuffer], rows: int) -> int:
        log = structlog.get_logger()
        cursor = self._get_cursor()
        params = parameter_rows(bindings, rows)
        start_time = time.monotonic()
        try:
            cursor.fast_executemany = True
            cursor.setinputsizes([_input_size(buf) for buf in bindings])
            cursor.executemany(self.sql, params)
        except pyodbc.Error as e:
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


def _input_size(buf: BulkBuffer) -> tuple[int, int, int] | None:
    """Input size for one parameter array.

    ``None`` leaves the parameter to pyodbc, which asks the driver
    (SQLDescribeParam) for its type and size.
    """
    if buf.descriptor.sql_type == SqlType.UNKNOWN:
        return None
    if buf.descriptor.sql_type == SqlType.BINARY:
        return (pyodbc.SQL_VARBINARY, max(1, buf.max_value_bytes // 2), 0)
    return (pyodbc.SQL_WVARCHAR, buf.max_value_bytes, 0)


class OdbcConnection:
    """Autocommit pyodbc connection."""

    def __init__(self, raw: Any) -> None:
        self.raw = raw
        self._quote_char: str | None = None

    @classmethod
    def open(
        cls,
        connection_string: str | None = None,
        *,
        dsn: str | None = None,
        user: str | None = None,
        password: str | None = None,
        login_timeout: int = 10,
    ) -> OdbcConnection:
        log = structlog.get_logger()
        if connection_string is None:
            if dsn is None:
                raise ConnectError("Either a connection string or a DSN is required")
            connection_string = build_connection_string(dsn, user, password)
            target = f"DSN '{dsn}'"
        else:
            target = "connection string"

        env = get_environment()
        if env.claim_driver_setup("odbc"):
            # Only honoured before the first connection of the process.
            pyodbc.pooling = env.pooling

        with sentry_sdk.start_span(op="db.connect", description="odbc"):
            try:
                raw = pyodbc.connect(
                    connection_string, autocommit=True, timeout=login_timeout
                )
            except pyodbc.Error as e:
                msg = f"Connection failed using {target}: {_diagnostic(e)}"
                raise ConnectError(msg) from e
        for sql_type, converter in OUTPUT_CONVERTERS.items():
            raw.add_output_converter(sql_type, converter)
        log.debug("connected", driver="odbc", target=target)
        return cls(raw)

    def __enter__(self) -> OdbcConnection:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def prepare(self, sql: str) -> OdbcStatement:
        return OdbcStatement(self, sql)

    def quote_identifier(self, name: str) -> str:
        if self._quote_char is None:
            try:
                quote = self.raw.getinfo(pyodbc.SQL_IDENTIFIER_QUOTE_CHAR)
            except pyodbc.Error as e:
                raise _exec_error("Driver info", e) from e
            self._quote_char = str(quote or "")
        return quote_identifier(name, self._quote_char)

    def execute_query(self, sql: str) -> OdbcResultSet:
        cursor = self.raw.cursor()
        try:
            _execute(cursor, sql)
        except DriverExecError:
            cursor.close()
            raise
        return OdbcResultSet(cursor, sql, owns_cursor=True)

    @property
    def closed(self) -> bool:
        return self.raw is None

    def close(self) -> None:
        if self.raw is not None:
            self.raw.close()
            self.raw = None


def list_drivers() -> list[str]:
    return sorted(pyodbc.drivers())


def list_data_sources() -> dict[str, str]:
    return dict(sorted(pyodbc.dataSources().items()))
