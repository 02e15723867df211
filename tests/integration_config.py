"""Configuration for integration tests.

Integration tests run only when a live data source is configured:

    export ODBCSV_TEST_CONNECTION_STRING="Driver={PostgreSQL Unicode};Server=localhost;..."
    export ODBCSV_TEST_TABLE=odbcsv_roundtrip

A ``postgresql://`` URL works too and is served through psycopg.
"""

import os

import pytest

TEST_CONNECTION_STRING = os.environ.get("ODBCSV_TEST_CONNECTION_STRING")

# Scratch table created and dropped by the round-trip tests
TEST_TABLE = os.environ.get("ODBCSV_TEST_TABLE", "odbcsv_roundtrip")

requires_data_source = pytest.mark.skipif(
    not TEST_CONNECTION_STRING,
    reason="ODBCSV_TEST_CONNECTION_STRING is not set",
)

# CLI connection arguments
CONNECTION_ARGS = ["--connection-string", TEST_CONNECTION_STRING or ""]
