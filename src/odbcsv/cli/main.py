"""odbcsv main entry point and command registration."""

from __future__ import annotations

import atexit
import os
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from odbcsv.__about__ import __version__
from odbcsv.cli.commands.catalog import (
    list_columns_command,
    list_data_sources_command,
    list_drivers_command,
)
from odbcsv.cli.commands.config import config_app
from odbcsv.cli.commands.insert import insert_command
from odbcsv.cli.commands.query import query_command
from odbcsv.cli.output import OutputFormat  # noqa: TC001
from odbcsv.core.config import load_config
from odbcsv.core.environment import get_environment
from odbcsv.core.exceptions import ConfigError, OdbcsvError
from odbcsv.core.logging import setup_logging
from odbcsv.core.monitoring import setup_sentry

app = typer.Typer(
    help="odbcsv - bulk CSV transfer between ODBC data sources and CSV files",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.command("query")(query_command)
app.command("insert")(insert_command)
app.command("list-columns")(list_columns_command)
app.command("list-drivers")(list_drivers_command)
app.command("list-data-sources")(list_data_sources_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"odbcsv {__version__}")
        raise typer.Exit()


def _sentry_dsn(config_file: Path | None) -> str | None:
    dsn = os.environ.get("SENTRY_DSN")
    if dsn:
        return dsn
    try:
        return load_config(config_file).sentry_dsn
    except ConfigError:
        # Reported by the command once it resolves its configuration.
        return None


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile"),
    ] = None,
    connection_string: Annotated[
        str | None,
        typer.Option(
            "--connection-string",
            "-c",
            help="ODBC connection string or postgresql:// URL",
        ),
    ] = None,
    dsn: Annotated[
        str | None,
        typer.Option("--dsn", help="ODBC data source name"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-U", help="User name (with --dsn)"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-W", help="Password (with --dsn)"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Listing format: table|json|csv"),
    ] = None,
    width: Annotated[
        int,
        typer.Option("--width", help="Column width for table format"),
    ] = 40,
) -> None:
    """odbcsv - bulk CSV transfer between ODBC data sources and CSV files."""
    setup_logging(verbose)
    setup_sentry(_sentry_dsn(config_file))

    transaction = sentry_sdk.start_transaction(
        op="cli", name=ctx.invoked_subcommand or "odbcsv"
    )
    transaction.__enter__()

    def cleanup() -> None:
        transaction.__exit__(None, None, None)
        sentry_sdk.flush(timeout=2)

    atexit.register(cleanup)
    atexit.register(get_environment().teardown)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["profile"] = profile
    ctx.obj["connection_string"] = connection_string
    ctx.obj["dsn"] = dsn
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["config_file"] = config_file
    ctx.obj["format"] = format.value if format else None
    ctx.obj["width"] = width


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except OdbcsvError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
