"""Shared test fixtures for odbcsv."""

from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from odbcsv.cli.main import app
from odbcsv.core.environment import get_environment
from tests.fakes import FakeConnection


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep user config, ODBCSV_* variables and driver state out of tests."""
    for var in (
        "ODBCSV_CONNECTION_STRING",
        "ODBCSV_DSN",
        "ODBCSV_USER",
        "ODBCSV_PASSWORD",
        "ODBCSV_BATCH_SIZE",
        "ODBCSV_MAX_TEXT_WIDTH",
        "ODBCSV_PROFILE",
        "SENTRY_DSN",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        "odbcsv.core.config.DEFAULT_CONFIG_PATH", tmp_path / "no-config.toml"
    )
    yield
    get_environment().teardown()


@pytest.fixture
def fake_connection():
    return FakeConnection()


@pytest.fixture
def patched_connection(fake_connection):
    """Route the CLI's connection factory to ``fake_connection``."""
    with patch(
        "odbcsv.cli.commands._shared.open_connection", return_value=fake_connection
    ):
        yield fake_connection
