"""Column metadata resolution.

Descriptors are built from per-column attribute calls (name, display
size, type, nullability) rather than a single describe call, since some
drivers under-report name lengths through describe-style calls.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from odbcsv.core.binder import count_placeholders
from odbcsv.core.exceptions import SchemaError
from odbcsv.core.models import ColumnDescriptor, SqlType

if TYPE_CHECKING:
    from collections.abc import Callable

    from odbcsv.core.drivers.base import Connection, ResultSet, Statement

# Reported sizes at or above this are "unbounded" markers (varchar(max),
# text, 2**31-1 style sentinels) rather than real widths.
UNBOUNDED_DISPLAY_SIZE = 1 << 24

# SQL that can carry positional parameters, or an ODBC escape like {call ...}.
_STATEMENT_START = re.compile(
    r"\s*(?:\{|\(|(?:INSERT|UPDATE|DELETE|MERGE|UPSERT|REPLACE|WITH|SELECT|VALUES"
    r"|CALL|EXEC|EXECUTE)\b)",
    re.IGNORECASE,
)


def normalize_display_size(size: int | None) -> int:
    """Map missing and sentinel sizes to 0, meaning "use the fallback width"."""
    if size is None or size <= 0 or size >= UNBOUNDED_DISPLAY_SIZE:
        return 0
    return int(size)


def resolve(result_set: ResultSet) -> list[ColumnDescriptor]:
    """Describe every column of an executed result set in ordinal order."""
    log = structlog.get_logger()
    count = result_set.num_result_cols()
    if count <= 0:
        raise SchemaError("Statement produced no result columns")

    descriptors: list[ColumnDescriptor] = []
    for ordinal in range(1, count + 1):
        try:
            name = result_set.col_name(ordinal)
            sql_type = result_set.col_data_type(ordinal)
            reported = result_set.col_display_size(ordinal)
            nullable = result_set.col_nullable(ordinal)
        except IndexError as e:
            msg = f"Driver reported {count} columns but has no metadata for column {ordinal}"
            raise SchemaError(msg) from e

        display_size = normalize_display_size(reported)
        if display_size == 0 and sql_type in (
            SqlType.CHAR,
            SqlType.WCHAR,
            SqlType.BINARY,
            SqlType.NUMERIC,
            SqlType.UNKNOWN,
        ):
            log.debug(
                "display size not reported; using fallback width",
                column=name,
                reported=reported,
            )
        descriptors.append(
            ColumnDescriptor(
                name=name,
                ordinal=ordinal,
                sql_type=sql_type,
                display_size=display_size,
                nullable=nullable,
            )
        )

    log.debug(
        "columns resolved",
        columns=[f"{d.name}:{d.sql_type.value}({d.display_size})" for d in descriptors],
    )
    return descriptors


def resolve_table(connection: Connection, table: str) -> list[ColumnDescriptor]:
    """Describe a table's columns through an empty query against it."""
    result_set = connection.execute_query(f"SELECT * FROM {table} WHERE 1 = 0")
    try:
        return resolve(result_set)
    finally:
        result_set.close()


def resolve_parameters(statement: Statement) -> list[ColumnDescriptor]:
    """Descriptors for a statement's positional parameters.

    Uses the driver's parameter description when it offers one; otherwise
    every parameter is text of unknown width.
    """
    log = structlog.get_logger()
    count = statement.num_params()
    if count <= 0:
        raise SchemaError(f"Statement has no '?' placeholders: {statement.sql[:100]}")

    described = statement.describe_params()
    if described is None:
        described = [(SqlType.UNKNOWN, 0)] * count
    elif len(described) != count:
        msg = (
            f"Driver described {len(described)} parameters but the statement "
            f"has {count} '?' placeholders"
        )
        raise SchemaError(msg)

    descriptors = [
        ColumnDescriptor(
            name=f"param_{i}",
            ordinal=i,
            sql_type=sql_type,
            display_size=normalize_display_size(size),
        )
        for i, (sql_type, size) in enumerate(described, start=1)
    ]
    log.debug(
        "parameters resolved",
        parameters=[f"{d.name}:{d.sql_type.value}({d.display_size})" for d in descriptors],
    )
    return descriptors


def quote_identifier(name: str, quote_char: str = '"') -> str:
    """Quote ``name`` with ``quote_char``, doubling embedded quotes.

    A blank quote character is how ODBC reports that identifier quoting
    is unsupported; the name is then used as is.
    """
    if not quote_char.strip():
        return name
    escaped = name.replace(quote_char, quote_char * 2)
    return f"{quote_char}{escaped}{quote_char}"


def insert_statement(
    table: str,
    descriptors: list[ColumnDescriptor],
    quote: Callable[[str], str] = quote_identifier,
) -> str:
    """INSERT with one placeholder per column, in ordinal order.

    Column names come from the driver and are always quoted, since any of
    them may be a reserved word. ``table`` is used as given.
    """
    columns = ", ".join(quote(d.name) for d in descriptors)
    placeholders = ", ".join("?" for _ in descriptors)
    return f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"


def is_statement(target: str) -> bool:
    """True when an insert target is SQL rather than a table name."""
    return bool(_STATEMENT_START.match(target)) or count_placeholders(target) > 0
