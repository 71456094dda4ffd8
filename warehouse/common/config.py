"""Connection and variable configuration.

Connections are read from ~/.warehouse/connections.toml, one table per named
connection:

    [default]
    driver = "redshift"
    host = "analytics.abc123.us-east-1.redshift.amazonaws.com"
    port = 5439
    database = "dev"
    table = "events"
    user = "analyst"
    password = "..."

Keys other than the standard ones (driver, host, port, database, table, user,
password) are passed to the driver as options, e.g. account/warehouse/role
for Snowflake.

Without a connections file the default connection comes from WAREHOUSE_*
environment variables, optionally set in a .env file at the project root.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from warehouse.sql.connection import ConnectionConfig
from warehouse.sql.errors import ConfigError


# Project root and config paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
ENV_PATH = PROJECT_ROOT / ".env"
CONNECTIONS_PATH = Path.home() / ".warehouse" / "connections.toml"

STANDARD_KEYS = ("driver", "host", "port", "database", "table", "user", "password")
ENV_PREFIX = "WAREHOUSE_"


def load_env(path: Optional[Path] = None) -> None:
    """Load environment variables from a .env file if it exists.

    Existing environment variables are never overridden.
    """
    env_path = path or ENV_PATH
    if not env_path.exists():
        return

    with open(env_path, "r") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                # Strip quotes from value if present
                value = value.strip()
                if len(value) > 1 and value[0] in ['"', "'"] and value[-1] == value[0]:
                    value = value[1:-1]
                if key not in os.environ:
                    os.environ[key] = value


def get_connections_path() -> Path:
    """Connections file location, overridable with WAREHOUSE_CONNECTIONS_FILE."""
    override = os.getenv("WAREHOUSE_CONNECTIONS_FILE")
    return Path(override).expanduser() if override else CONNECTIONS_PATH


def _parse_port(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Port must be an integer, got {value!r}") from None


def config_from_mapping(entry: Dict[str, Any]) -> ConnectionConfig:
    """Build a ConnectionConfig from a connections.toml table or similar dict."""
    options = {key: value for key, value in entry.items() if key not in STANDARD_KEYS}
    return ConnectionConfig(
        driver=entry.get("driver", "redshift"),
        host=entry.get("host"),
        port=_parse_port(entry.get("port")),
        database=entry.get("database"),
        user=entry.get("user"),
        password=entry.get("password", os.getenv(f"{ENV_PREFIX}PASSWORD")),
        table=entry.get("table"),
        options=options,
    )


def config_from_env() -> ConnectionConfig:
    """Build a ConnectionConfig from WAREHOUSE_* environment variables."""
    load_env()

    entry = {}
    for key in STANDARD_KEYS:
        value = os.getenv(f"{ENV_PREFIX}{key.upper()}")
        if value:
            entry[key] = value

    if "database" not in entry and "host" not in entry:
        raise ConfigError(
            f"No connection configured.\n"
            f"Create {get_connections_path()} with a [default] section, "
            f"or set {ENV_PREFIX}HOST, {ENV_PREFIX}DATABASE, {ENV_PREFIX}USER and "
            f"{ENV_PREFIX}PASSWORD (in your .env file or as environment variables)."
        )

    return config_from_mapping(entry)


def load_connection_config(name: str = "default", path: Optional[Path] = None) -> ConnectionConfig:
    """Load a named connection.

    Args:
        name: Table name in the connections file
        path: Connections file (defaults to get_connections_path())

    Returns:
        ConnectionConfig for the named connection

    Raises:
        ConfigError: If the connection is missing or malformed
    """
    config_path = path or get_connections_path()

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                connections = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid connections file {config_path}: {e}") from e

        if name in connections:
            entry = connections[name]
            if not isinstance(entry, dict):
                raise ConfigError(f"Connection '{name}' in {config_path} must be a table")
            return config_from_mapping(entry)

        if name != "default":
            raise ConfigError(
                f"No '{name}' connection found in {config_path}\n"
                f"Please add a [{name}] section."
            )

    elif name != "default":
        raise ConfigError(f"Connections file not found at {config_path}")

    return config_from_env()


def load_variables(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a substitution context from a YAML mapping file."""
    vars_path = Path(path)
    if not vars_path.exists():
        raise ConfigError(f"Variables file not found: {vars_path}")

    with open(vars_path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {vars_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Variables file {vars_path} must contain a mapping")

    return {str(key): value for key, value in data.items()}
