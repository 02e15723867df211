"""Configuration management for odbcsv.

Handles the TOML config file, environment variables, named profiles
and precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--connection-string, --dsn, --batch-size, ...)
2. Environment variables (ODBCSV_*)
3. Named profile (--profile or ODBCSV_PROFILE env var)
4. Config file defaults
5. Built-in defaults

A connection string and a DSN are mutually exclusive: whichever the
highest layer names wins and the other is cleared.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from odbcsv.core.conversions import DEFAULT_MAX_TEXT_WIDTH
from odbcsv.core.exceptions import ConfigError
from odbcsv.core.pipeline import DEFAULT_BATCH_SIZE

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "odbcsv" / "config.toml"

_ENV_VARS: dict[str, str] = {
    "ODBCSV_CONNECTION_STRING": "connection_string",
    "ODBCSV_DSN": "dsn",
    "ODBCSV_USER": "user",
    "ODBCSV_PASSWORD": "password",  # pragma: allowlist secret
    "ODBCSV_BATCH_SIZE": "batch_size",
    "ODBCSV_MAX_TEXT_WIDTH": "max_text_width",
    "SENTRY_DSN": "sentry_dsn",
}

_INT_FIELDS = ("batch_size", "max_text_width", "login_timeout")

_TRANSFER_DEFAULTS: dict[str, Any] = {
    "batch_size": DEFAULT_BATCH_SIZE,
    "null_text": "",
    "max_text_width": DEFAULT_MAX_TEXT_WIDTH,
    "encoding": "utf-8",
    "connection_pooling": False,
    "login_timeout": 10,
    "sentry_dsn": None,
}

_TARGET_DEFAULTS: dict[str, Any] = {
    "connection_string": None,
    "dsn": None,
    "user": None,
    "password": None,
}


def _check_single_target(data: Any) -> Any:
    if isinstance(data, dict) and data.get("connection_string") and data.get("dsn"):
        msg = "connection_string and dsn are mutually exclusive"
        raise ValueError(msg)
    return data


class ConnectionProfile(BaseModel):
    connection_string: str | None = None
    dsn: str | None = None
    user: str | None = None
    password: str | None = None
    batch_size: int | None = Field(default=None, gt=0)
    null_text: str | None = None
    max_text_width: int | None = Field(default=None, gt=0)
    encoding: str | None = None

    @model_validator(mode="before")
    @classmethod
    def single_target(cls, data: Any) -> Any:
        return _check_single_target(data)


class AppConfig(BaseModel):
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    null_text: str = ""
    max_text_width: int = Field(default=DEFAULT_MAX_TEXT_WIDTH, gt=0)
    encoding: str = "utf-8"
    connection_pooling: bool = False
    login_timeout: int = Field(default=10, ge=0)
    sentry_dsn: str | None = None
    default_profile: str | None = None
    profiles: dict[str, ConnectionProfile] = {}


class ResolvedConfig(BaseModel):
    connection_string: str | None = None
    dsn: str | None = None
    user: str | None = None
    password: str | None = None
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    null_text: str = ""
    max_text_width: int = Field(default=DEFAULT_MAX_TEXT_WIDTH, gt=0)
    encoding: str = "utf-8"
    connection_pooling: bool = False
    login_timeout: int = 10
    sentry_dsn: str | None = None
    active_profile: str | None = None
    sources: dict[str, str] = {}

    @property
    def has_target(self) -> bool:
        return bool(self.connection_string or self.dsn)


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if the file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def _apply_target(
    resolved: dict[str, Any], sources: dict[str, str], key: str, value: Any, source: str
) -> None:
    """Set a connection field, clearing the alternative target."""
    resolved[key] = value
    sources[key] = source
    other = {"connection_string": "dsn", "dsn": "connection_string"}.get(key)
    if other and resolved.get(other) is not None:
        resolved[other] = None
        sources[other] = f"cleared by {source}"


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve configuration using the precedence chain.

    CLI > env > profile > config defaults > built-in defaults.
    """
    if cli_overrides.get("connection_string") and cli_overrides.get("dsn"):
        raise ConfigError("Use either --connection-string or --dsn, not both")

    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    resolved.update(_TARGET_DEFAULTS)
    resolved.update(_TRANSFER_DEFAULTS)
    for key in resolved:
        sources[key] = "default"

    # Layer 2: Config file globals
    for key in _TRANSFER_DEFAULTS:
        value = getattr(config, key)
        if value != _TRANSFER_DEFAULTS[key]:
            resolved[key] = value
            sources[key] = "config"

    # Layer 3: Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get("ODBCSV_PROFILE")
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        source = f"profile: {effective_profile}"
        for key in profile.model_fields_set:
            value = getattr(profile, key)
            if value is None:
                continue
            _apply_target(resolved, sources, key, value, source)

    # Layer 4: Environment variables
    env_targets = [
        var
        for var in ("ODBCSV_CONNECTION_STRING", "ODBCSV_DSN")
        if os.environ.get(var)
    ]
    if len(env_targets) > 1:
        raise ConfigError("ODBCSV_CONNECTION_STRING and ODBCSV_DSN are both set")
    for env_var, field_name in _ENV_VARS.items():
        value: Any = os.environ.get(env_var)
        if value is None or value == "":
            continue
        if field_name in _INT_FIELDS:
            try:
                value = int(value)
            except ValueError:
                msg = f"Invalid {env_var} value: '{value}'. Must be an integer"
                raise ConfigError(msg) from None
        _apply_target(resolved, sources, field_name, value, f"env: {env_var}")

    # Layer 5: CLI flags (highest priority)
    for cli_name, value in cli_overrides.items():
        if value is None:
            continue
        if cli_name not in resolved:
            msg = f"Unknown configuration option: {cli_name}"
            raise ConfigError(msg)
        flag = cli_name.replace("_", "-")
        _apply_target(resolved, sources, cli_name, value, f"cli: --{flag}")

    resolved["active_profile"] = effective_profile
    resolved["sources"] = sources
    try:
        return ResolvedConfig(**resolved)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise ConfigError(f"Invalid configuration value for: {fields}") from e
