"""Catalogue listings: result columns, installed drivers, data sources."""

from __future__ import annotations

from typing import Annotated

import typer

from odbcsv.cli.commands._shared import get_config, get_connection, output_listing
from odbcsv.cli.helpers import fmt_size
from odbcsv.core.conversions import cell_byte_width
from odbcsv.core.exceptions import InputError
from odbcsv.core.models import Listing
from odbcsv.core.resolver import resolve, resolve_table

_COLUMN_HEADERS = ["name", "ordinal", "type", "display_size", "nullable", "buffer"]


def list_columns_command(
    ctx: typer.Context,
    table: Annotated[
        str | None,
        typer.Argument(help="Table to describe"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Describe the result columns of a query"),
    ] = None,
    max_text_width: Annotated[
        int | None,
        typer.Option("--max-text-width", min=1, help="Fallback buffer width in bytes"),
    ] = None,
    encoding: Annotated[
        str | None,
        typer.Option("--encoding", help="Transfer encoding used to size buffers"),
    ] = None,
) -> None:
    """Show the column descriptors and per-row buffer size of a table or query."""
    if (table is None) == (execute is None):
        raise InputError("Give either a table name or --execute SQL")

    config = get_config(ctx, max_text_width=max_text_width, encoding=encoding)
    with get_connection(config) as connection:
        if execute is not None:
            result_set = connection.execute_query(execute)
            try:
                descriptors = resolve(result_set)
            finally:
                result_set.close()
        else:
            assert table is not None
            descriptors = resolve_table(connection, table)

    rows = [
        (
            d.name,
            d.ordinal,
            d.sql_type.value,
            d.display_size or "-",
            "yes" if d.nullable else "no",
            fmt_size(
                cell_byte_width(
                    d, encoding=config.encoding, max_text_width=config.max_text_width
                )
            ),
        )
        for d in descriptors
    ]
    output_listing(ctx, Listing(headers=_COLUMN_HEADERS, rows=rows))


def list_drivers_command(ctx: typer.Context) -> None:
    """List the ODBC drivers installed in the driver manager."""
    from odbcsv.core.drivers.odbc import list_drivers

    output_listing(ctx, Listing(headers=["driver"], rows=[(d,) for d in list_drivers()]))


def list_data_sources_command(ctx: typer.Context) -> None:
    """List the ODBC data sources (DSNs) and their drivers."""
    from odbcsv.core.drivers.odbc import list_data_sources

    rows = list(list_data_sources().items())
    output_listing(ctx, Listing(headers=["data_source", "driver"], rows=rows))
