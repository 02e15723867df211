"""Process-wide driver environment.

Driver managers keep process-level state (ODBC's environment handle and
its connection pooling attribute) that must be configured once, before
the first connection, and released at exit. One DriverEnvironment holds
that state; every Connection reads it and registers with it.
"""

from __future__ import annotations

import weakref
from typing import Any

import structlog


class DriverEnvironment:
    def __init__(self) -> None:
        self.pooling = False
        self._initialized = False
        self._ready_drivers: set[str] = set()
        self._connections: weakref.WeakSet[Any] = weakref.WeakSet()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def init(self, *, pooling: bool = False) -> None:
        """Fix process-wide settings. Later calls are ignored."""
        if self._initialized:
            return
        self.pooling = pooling
        self._initialized = True
        structlog.get_logger().debug("driver environment initialized", pooling=pooling)

    def claim_driver_setup(self, driver: str) -> bool:
        """True exactly once per driver, for its one-time global setup."""
        if not self._initialized:
            self.init()
        if driver in self._ready_drivers:
            return False
        self._ready_drivers.add(driver)
        return True

    def register(self, connection: Any) -> None:
        self._connections.add(connection)

    @property
    def open_connections(self) -> int:
        return sum(1 for c in self._connections if not getattr(c, "closed", False))

    def teardown(self) -> None:
        """Close connections still open and forget all settings."""
        log = structlog.get_logger()
        for connection in list(self._connections):
            if not getattr(connection, "closed", False):
                log.debug("closing leftover connection")
                connection.close()
        self._connections = weakref.WeakSet()
        self._ready_drivers.clear()
        self._initialized = False
        self.pooling = False


_ENVIRONMENT = DriverEnvironment()


def get_environment() -> DriverEnvironment:
    return _ENVIRONMENT
