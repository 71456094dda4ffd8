"""Exceptions raised by the SQL template executor."""

from typing import Iterable


class WarehouseError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(WarehouseError, ValueError):
    """Connection configuration or variable file is missing or malformed."""


class UnknownDriver(WarehouseError, ValueError):
    """Configuration names a backend driver that is not registered."""


class TemplateNotFound(WarehouseError, FileNotFoundError):
    """SQL template file does not exist or cannot be read."""


class UnresolvedPlaceholder(WarehouseError, KeyError):
    """One or more @{name} placeholders have no value in the context."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(set(names))
        super().__init__(self.names)

    def __str__(self) -> str:
        listed = ', '.join(f'@{{{name}}}' for name in self.names)
        return f"No value provided for placeholder(s): {listed}"


class ConnectionFailed(WarehouseError, ConnectionError):
    """A session to the backend could not be opened."""

    def __init__(self, host: str, reason: str):
        self.host = host
        self.reason = reason
        super().__init__(f"Could not connect to {host}: {reason}")


class ConnectionUnavailable(WarehouseError):
    """No open connection handle when execution was attempted."""


class InvalidHandle(WarehouseError):
    """Operation on a connection handle that is already closed."""


class BackendQueryError(WarehouseError):
    """The backend rejected or failed a statement."""

    def __init__(self, statement: str, reason: str):
        self.statement = statement
        self.reason = reason
        super().__init__(reason)
