"""Configuration management CLI commands."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import typer

from odbcsv.cli.commands._shared import get_config
from odbcsv.core.config import DEFAULT_CONFIG_PATH, load_config

if TYPE_CHECKING:
    from pathlib import Path

config_app = typer.Typer(help="Configuration management commands")

_PASSWORD_ATTR = re.compile(r"(?i)\b(pwd|password)=(\{(?:[^}]|\}\})*\}|[^;]*)")
_URL_PASSWORD = re.compile(r"(://[^:/@]+:)[^@]*@")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _mask_password(value: str | None) -> str:
    if value is None:
        return "not set"
    return "***"


def mask_connection_string(value: str | None) -> str:
    """Hide PWD= attributes and URL passwords."""
    if value is None:
        return "not set"
    value = _PASSWORD_ATTR.sub(lambda m: f"{m.group(1)}=***", value)
    return _URL_PASSWORD.sub(r"\1***@", value)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved configuration with source attribution."""
    resolved = get_config(ctx)
    sources = resolved.sources

    typer.echo("Connection Settings (resolved):")
    connection_fields = [
        ("connection_string", mask_connection_string(resolved.connection_string)),
        ("dsn", resolved.dsn or "not set"),
        ("user", resolved.user or "not set"),
        ("password", _mask_password(resolved.password)),
        ("login_timeout", f"{resolved.login_timeout}s"),
        ("connection_pooling", str(resolved.connection_pooling).lower()),
    ]
    for field_name, value in connection_fields:
        typer.echo(f"  {field_name}: {value} ({sources.get(field_name, 'default')})")

    typer.echo("")
    typer.echo("Transfer:")
    transfer_fields = [
        ("batch_size", str(resolved.batch_size)),
        ("null_text", repr(resolved.null_text)),
        ("max_text_width", str(resolved.max_text_width)),
        ("encoding", resolved.encoding),
    ]
    for field_name, value in transfer_fields:
        typer.echo(f"  {field_name}: {value} ({sources.get(field_name, 'default')})")

    typer.echo("")
    if resolved.active_profile:
        typer.echo(f"Active Profile: {resolved.active_profile}")
    else:
        typer.echo("Active Profile: none")

    config_path: Path | None = ctx.obj.get("config_file")
    typer.echo(f"Config File: {config_path or DEFAULT_CONFIG_PATH}")


@config_app.command("profiles")
def config_profiles(ctx: typer.Context) -> None:
    """List available connection profiles."""
    config_path: Path | None = ctx.obj.get("config_file")
    app_config = load_config(config_path)
    active_profile = ctx.obj.get("profile") or app_config.default_profile

    if not app_config.profiles:
        typer.echo("No profiles configured.")
        typer.echo(f"Add profiles to: {config_path or DEFAULT_CONFIG_PATH}")
        return

    typer.echo("Available Profiles:")
    typer.echo("")
    for name, profile in sorted(app_config.profiles.items()):
        is_active = name == active_profile
        marker = "* " if is_active else "  "
        label = " (active)" if is_active else ""
        typer.echo(f"{marker}{name}{label}")

        if profile.connection_string:
            display_fields = [
                ("connection_string", mask_connection_string(profile.connection_string))
            ]
        else:
            display_fields = [("dsn", profile.dsn or "not set")]
        if profile.user:
            display_fields.append(("user", profile.user))
        if profile.batch_size:
            display_fields.append(("batch_size", str(profile.batch_size)))

        for field_name, value in display_fields:
            typer.echo(f"      {field_name}: {value}")
        typer.echo("")
