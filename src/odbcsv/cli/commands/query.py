from __future__ import annotations

from typing import Annotated

import structlog
import typer

from odbcsv.cli.commands._shared import get_config, get_connection
from odbcsv.cli.helpers import fmt_elapsed, fmt_rate
from odbcsv.core.csv_codec import CsvSink
from odbcsv.core.logging import transfer_context
from odbcsv.core.pipeline import ReadPipeline
from odbcsv.core.sources import open_csv_output, resolve_query_source, stdin_is_tty


def query_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to execute"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Execute inline SQL query"),
    ] = None,
    output: Annotated[
        str | None,
        typer.Option("--output", "-o", help="Write CSV to this file instead of stdout"),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-b", min=1, help="Rows fetched per round trip"),
    ] = None,
    null_text: Annotated[
        str | None,
        typer.Option("--null-text", help="Text written for NULL values"),
    ] = None,
    max_text_width: Annotated[
        int | None,
        typer.Option(
            "--max-text-width",
            min=1,
            help="Buffer bytes for columns whose size the driver does not report",
        ),
    ] = None,
    encoding: Annotated[
        str | None,
        typer.Option("--encoding", help="Text encoding of the CSV output"),
    ] = None,
    no_header: Annotated[
        bool,
        typer.Option("--no-header", help="Do not write the column header row"),
    ] = False,
) -> None:
    """Execute a SQL query and write the result set as CSV."""
    if execute is None and file is None and stdin_is_tty():
        typer.echo(ctx.get_help())
        raise typer.Exit()

    log = structlog.get_logger()
    config = get_config(
        ctx,
        batch_size=batch_size,
        null_text=null_text,
        max_text_width=max_text_width,
        encoding=encoding,
    )
    sql = resolve_query_source(inline=execute, file_path=file, encoding=config.encoding)

    with (
        transfer_context("query", output=output or "-"),
        get_connection(config) as connection,
        open_csv_output(output, encoding=config.encoding) as stream,
    ):
        sink = CsvSink(stream, null_text=config.null_text)
        pipeline = ReadPipeline(
            connection,
            sql,
            sink,
            batch_size=config.batch_size,
            max_text_width=config.max_text_width,
            encoding=config.encoding,
            write_header=not no_header,
        )
        summary = pipeline.run()

    log.info(
        "query complete",
        rows=summary.rows,
        batches=summary.batches,
        elapsed=fmt_elapsed(summary.elapsed_s),
        rate=fmt_rate(summary.rows, summary.elapsed_s),
    )
