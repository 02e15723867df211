from __future__ import annotations

from typing import Annotated

import structlog
import typer

from odbcsv.cli.commands._shared import get_config, get_connection
from odbcsv.cli.helpers import fmt_elapsed, fmt_rate
from odbcsv.core.csv_codec import CsvSource
from odbcsv.core.logging import transfer_context
from odbcsv.core.pipeline import WritePipeline
from odbcsv.core.resolver import insert_statement, is_statement, resolve_table
from odbcsv.core.sources import open_csv_input


def insert_command(
    ctx: typer.Context,
    target: Annotated[
        str,
        typer.Argument(
            help="Table name, or an INSERT statement with one '?' per CSV column",
        ),
    ],
    input: Annotated[
        str | None,
        typer.Option("--input", "-i", help="Read CSV from this file instead of stdin"),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-b", min=1, help="Rows sent per execute"),
    ] = None,
    null_text: Annotated[
        str | None,
        typer.Option("--null-text", help="CSV field text that is inserted as NULL"),
    ] = None,
    max_text_width: Annotated[
        int | None,
        typer.Option(
            "--max-text-width",
            min=1,
            help="Buffer bytes for parameters whose size is unknown",
        ),
    ] = None,
    encoding: Annotated[
        str | None,
        typer.Option("--encoding", help="Text encoding of the CSV input"),
    ] = None,
    no_header: Annotated[
        bool,
        typer.Option("--no-header", help="The first CSV line is data, not a header"),
    ] = False,
) -> None:
    """Insert CSV rows into a table or through a parameterized statement.

    A bare table name inserts into all of the table's columns in order.
    """
    log = structlog.get_logger()
    config = get_config(
        ctx,
        batch_size=batch_size,
        null_text=null_text,
        max_text_width=max_text_width,
        encoding=encoding,
    )

    with (
        transfer_context("insert", target=target),
        get_connection(config) as connection,
        open_csv_input(input, encoding=config.encoding) as stream,
    ):
        descriptors = None
        if is_statement(target):
            sql = target
        else:
            descriptors = resolve_table(connection, target)
            sql = insert_statement(target, descriptors, connection.quote_identifier)
            log.debug("insert statement built", table=target, sql=sql)

        source = CsvSource(stream, has_header=not no_header)
        pipeline = WritePipeline(
            connection,
            sql,
            descriptors,
            batch_size=config.batch_size,
            null_text=config.null_text,
            max_text_width=config.max_text_width,
            encoding=config.encoding,
        )
        summary = pipeline.run(source, column_count=source.column_count)

    log.info(
        "insert complete",
        rows=summary.rows,
        batches=summary.batches,
        elapsed=fmt_elapsed(summary.elapsed_s),
        rate=fmt_rate(summary.rows, summary.elapsed_s),
    )
