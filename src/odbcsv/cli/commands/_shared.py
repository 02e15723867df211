"""Shared CLI plumbing for command modules.

Configuration resolution, connection creation and listing output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from odbcsv.cli.output import get_formatter, write_listing
from odbcsv.core.config import load_config, resolve_config
from odbcsv.core.drivers import open_connection

if TYPE_CHECKING:
    import typer

    from odbcsv.core.config import ResolvedConfig
    from odbcsv.core.drivers.base import Connection
    from odbcsv.core.models import Listing

_CONNECTION_KEYS = ("connection_string", "dsn", "user", "password")


def get_config(ctx: typer.Context, **overrides: Any) -> ResolvedConfig:
    """Resolve configuration from the global options plus command flags."""
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in _CONNECTION_KEYS:
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    for key, val in overrides.items():
        if val is not None:
            cli_overrides[key] = val

    return resolve_config(config, profile_name=obj.get("profile"), **cli_overrides)


def get_connection(config: ResolvedConfig) -> Connection:
    return open_connection(config)


def output_listing(ctx: typer.Context, listing: Listing) -> None:
    obj = ctx.ensure_object(dict)
    formatter = get_formatter(obj.get("format"), width=obj.get("width", 40))
    write_listing(formatter, listing)
