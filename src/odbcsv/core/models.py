"""Models for column metadata, transfer summaries and catalogue listings.

Pydantic models shared by the resolver, the pipelines and the CLI.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SqlType(StrEnum):
    """Closed set of column type categories the engine knows how to buffer."""

    CHAR = "char"
    WCHAR = "wchar"
    NUMERIC = "numeric"
    INTEGER = "integer"
    FLOAT = "float"
    DATE = "date"
    TIMESTAMP = "timestamp"
    BINARY = "binary"
    UNKNOWN = "unknown"


class ColumnDescriptor(BaseModel):
    """Normalized metadata for one result column or statement parameter.

    ``display_size`` 0 means the driver did not report a usable width.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    ordinal: int = Field(ge=1)
    sql_type: SqlType = SqlType.UNKNOWN
    display_size: int = Field(default=0, ge=0)
    nullable: bool = True


class ReadSummary(BaseModel):
    """Outcome of a query -> CSV transfer."""

    columns: int
    rows: int
    batches: int
    elapsed_s: float = 0.0


class WriteSummary(BaseModel):
    """Outcome of a CSV -> statement transfer."""

    columns: int
    rows: int
    batches: int
    elapsed_s: float = 0.0


class Listing(BaseModel):
    """Tabular catalogue output (drivers, data sources, columns)."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    headers: list[str]
    rows: list[tuple[Any, ...]]
