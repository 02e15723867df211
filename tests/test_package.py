"""Tests for package structure and imports."""

import pytest


@pytest.mark.unit
def test_package_imports():
    import odbcsv

    assert odbcsv is not None


@pytest.mark.unit
def test_version_format():
    from odbcsv import __version__

    parts = __version__.split(".")
    assert len(parts) == 3
    assert all(part.isdigit() for part in parts)


@pytest.mark.unit
def test_version_value():
    from odbcsv import __version__

    assert __version__ == "0.1.0"


@pytest.mark.unit
def test_engine_modules_import_without_drivers():
    """Core modules do not pull in a database driver at import time."""
    import odbcsv.core.buffers
    import odbcsv.core.drivers
    import odbcsv.core.pipeline
    import odbcsv.core.resolver  # noqa: F401
