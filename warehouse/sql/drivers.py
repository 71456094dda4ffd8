"""
Backend drivers.

Each driver opens a DB-API connection for a ConnectionConfig, knows which
exceptions its client library raises, and quotes string literals with the
backend's own rules. Client libraries are imported only when a driver is used.

Sessions are opened in autocommit mode: the executor never manages
transactions.
"""

import sqlite3
from typing import Any, Dict, Optional, Tuple, Type

from .errors import UnknownDriver


class Driver:
    """Base driver. Subclasses implement connect, errors and quote."""

    name = ''
    default_port: Optional[int] = None
    requires_host = True
    requires_database = True

    def connect(self, config) -> Any:
        raise NotImplementedError

    def errors(self) -> Tuple[Type[BaseException], ...]:
        """Exception classes raised by the client library."""
        raise NotImplementedError

    def quote(self, raw, value: str) -> str:
        """Quote a string as a SQL literal, surrounding quotes included."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class PostgresDriver(Driver):
    """PostgreSQL protocol via psycopg."""

    name = 'postgres'
    default_port = 5432

    def connect(self, config):
        import psycopg

        return psycopg.connect(
            host=config.host,
            port=config.resolved_port,
            dbname=config.database,
            user=config.user,
            password=config.password or '',
            connect_timeout=int(config.options.get('connect_timeout', 10)),
            autocommit=True,
        )

    def errors(self):
        import psycopg

        return (psycopg.Error,)

    def quote(self, raw, value):
        from psycopg import sql

        return sql.Literal(value).as_string(raw)


class RedshiftDriver(PostgresDriver):
    """Amazon Redshift, which speaks the PostgreSQL wire protocol."""

    name = 'redshift'
    default_port = 5439


class SnowflakeDriver(Driver):
    """Snowflake via snowflake-connector-python."""

    name = 'snowflake'
    default_port = 443
    requires_database = False

    def connect(self, config):
        import snowflake.connector  # pyright: ignore[reportMissingImports]

        params = {
            'account': config.options.get('account') or config.host,
            'user': config.user,
            'password': config.password,
            'authenticator': config.options.get('authenticator'),
            'database': config.database,
            'schema': config.options.get('schema'),
            'warehouse': config.options.get('warehouse'),
            'role': config.options.get('role'),
        }
        return snowflake.connector.connect(
            autocommit=True,
            **{key: value for key, value in params.items() if value is not None}
        )

    def errors(self):
        import snowflake.connector  # pyright: ignore[reportMissingImports]

        return (snowflake.connector.errors.Error,)

    def quote(self, raw, value):
        from snowflake.connector.converter import SnowflakeConverter  # pyright: ignore[reportMissingImports]

        return SnowflakeConverter.quote(SnowflakeConverter.escape(value))


class SqliteDriver(Driver):
    """Local SQLite database file, or ':memory:'."""

    name = 'sqlite'
    requires_host = False

    def connect(self, config):
        return sqlite3.connect(
            config.database,
            timeout=float(config.options.get('connect_timeout', 5)),
            isolation_level=None,
        )

    def errors(self):
        return (sqlite3.Error,)

    def quote(self, raw, value):
        return raw.execute("SELECT quote(?)", (value,)).fetchone()[0]


DRIVERS: Dict[str, Driver] = {
    driver.name: driver
    for driver in (RedshiftDriver(), PostgresDriver(), SnowflakeDriver(), SqliteDriver())
}


def get_driver(name: str) -> Driver:
    """Look up a registered driver by name (case-insensitive)."""
    try:
        return DRIVERS[name.lower()]
    except KeyError:
        available = ', '.join(sorted(DRIVERS))
        raise UnknownDriver(f"Unknown driver '{name}'. Available: {available}") from None
