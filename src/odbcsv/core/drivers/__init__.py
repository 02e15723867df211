"""Driver adapters and connection factory.

Adapter modules are imported on demand so a missing driver manager only
affects the data sources that need it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from odbcsv.core.drivers.base import Connection, ResultSet, Statement
from odbcsv.core.environment import get_environment
from odbcsv.core.exceptions import ConfigError

if TYPE_CHECKING:
    from odbcsv.core.config import ResolvedConfig

__all__ = ["Connection", "ResultSet", "Statement", "open_connection"]


def is_postgres_url(connection_string: str) -> bool:
    return connection_string.startswith(("postgresql://", "postgres://"))


def open_connection(config: ResolvedConfig) -> Connection:
    """Open a connection for a resolved connection string or DSN."""
    env = get_environment()
    env.init(pooling=config.connection_pooling)

    connection: Connection
    if config.connection_string:
        if is_postgres_url(config.connection_string):
            from odbcsv.core.drivers.postgres import PgConnection

            connection = PgConnection.open(
                config.connection_string, login_timeout=config.login_timeout
            )
        else:
            from odbcsv.core.drivers.odbc import OdbcConnection

            connection = OdbcConnection.open(
                config.connection_string, login_timeout=config.login_timeout
            )
    elif config.dsn:
        from odbcsv.core.drivers.odbc import OdbcConnection

        connection = OdbcConnection.open(
            dsn=config.dsn,
            user=config.user,
            password=config.password,
            login_timeout=config.login_timeout,
        )
    else:
        msg = (
            "No data source configured. Use --connection-string, --dsn, "
            "a profile, or ODBCSV_CONNECTION_STRING."
        )
        raise ConfigError(msg)

    env.register(connection)
    return connection
