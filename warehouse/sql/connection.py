"""
Connection configuration and handles.

A ConnectionHandle owns exactly one backend session. It is either open or
closed; closing twice is an error, so double-close bugs surface in tests
instead of being ignored.

    config = ConnectionConfig(host='example.redshift.amazonaws.com',
                              database='dev', user='analyst', password='...')
    with open_connection(config) as handle:
        ...
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .drivers import Driver, get_driver
from .errors import ConfigError, ConnectionFailed, InvalidHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionConfig:
    """Parameters for one backend session. Built once, never mutated."""
    driver: str = 'redshift'
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    table: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        driver = get_driver(self.driver)
        if driver.requires_database and not self.database:
            raise ConfigError(f"{driver.name} connection requires a database")
        if driver.requires_host and not (self.host or self.options.get('account')):
            raise ConfigError(f"{driver.name} connection requires a host")

    @property
    def resolved_port(self) -> Optional[int]:
        """Configured port, or the driver's default."""
        if self.port is not None:
            return int(self.port)
        return get_driver(self.driver).default_port

    @property
    def address(self) -> str:
        """Human-readable location, for messages."""
        if self.host:
            port = self.resolved_port
            return f"{self.host}:{port}" if port else self.host
        return self.options.get('account') or str(self.database)


class ConnectionHandle:
    """An open session to the backend, released exactly once."""

    def __init__(self, raw: Any, config: ConnectionConfig, driver: Optional[Driver] = None):
        self.raw = raw
        self.config = config
        self.driver = driver or get_driver(config.driver)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def cursor(self):
        if self._closed:
            raise InvalidHandle(f"Connection to {self.config.address} is closed")
        return self.raw.cursor()

    def close(self):
        """Release the session. A second call raises InvalidHandle."""
        if self._closed:
            raise InvalidHandle(f"Connection to {self.config.address} is already closed")
        try:
            self.raw.close()
        finally:
            self._closed = True
            logger.debug(f"Closed {self.driver.name} connection to {self.config.address}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if not self._closed:
            self.close()
        return False

    def __repr__(self) -> str:
        state = 'closed' if self._closed else 'open'
        return f"<ConnectionHandle {self.driver.name} {self.config.address} {state}>"


def open_connection(config: ConnectionConfig) -> ConnectionHandle:
    """
    Open a session using the supplied configuration.

    Raises:
        ConnectionFailed: On network or authentication error. Not retried.
    """
    driver = get_driver(config.driver)
    logger.debug(f"Connecting to {driver.name} at {config.address}...")

    try:
        raw = driver.connect(config)
    except driver.errors() + (OSError,) as e:
        raise ConnectionFailed(config.address, str(e).strip() or type(e).__name__) from e

    logger.debug(f"Connected to database: {config.database}")
    return ConnectionHandle(raw, config, driver)


def close_connection(handle: ConnectionHandle):
    """Release a session. Closing an already-closed handle raises InvalidHandle."""
    handle.close()


def escape_literal(value: Optional[str], handle: ConnectionHandle) -> Optional[str]:
    """
    Quote a raw string as a SQL string literal using the backend's rules.

    The result includes the surrounding quotes and can be placed verbatim in a
    substitution context. None maps to None.
    """
    if value is None:
        return None
    if handle.closed:
        raise InvalidHandle(f"Connection to {handle.config.address} is closed")
    return handle.driver.quote(handle.raw, str(value))
