"""Tests for the process-wide driver environment."""

import pytest

from odbcsv.core.environment import DriverEnvironment, get_environment
from tests.fakes import FakeConnection


@pytest.mark.unit
class TestDriverEnvironment:
    def test_singleton(self):
        assert get_environment() is get_environment()

    def test_init_is_idempotent(self):
        env = DriverEnvironment()
        env.init(pooling=True)
        env.init(pooling=False)
        assert env.initialized is True
        assert env.pooling is True

    def test_driver_setup_claimed_once(self):
        env = DriverEnvironment()
        assert env.claim_driver_setup("odbc") is True
        assert env.claim_driver_setup("odbc") is False
        assert env.claim_driver_setup("postgresql") is True
        assert env.initialized is True

    def test_tracks_open_connections(self):
        env = DriverEnvironment()
        a, b = FakeConnection(), FakeConnection()
        env.register(a)
        env.register(b)
        assert env.open_connections == 2
        a.close()
        assert env.open_connections == 1

    def test_teardown_closes_leftovers(self):
        env = DriverEnvironment()
        conn = FakeConnection()
        env.init(pooling=True)
        env.register(conn)
        env.teardown()
        assert conn.closed is True
        assert env.initialized is False
        assert env.pooling is False
        assert env.claim_driver_setup("odbc") is True
