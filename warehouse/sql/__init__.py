"""
Templated SQL execution

Load a SQL template, substitute @{name} placeholders from an explicit
context, and run it once against Redshift, PostgreSQL, Snowflake or SQLite.

Usage as CLI:
    python -m warehouse.sql query <sql-file> [--var-<name> <value> ...]

Usage programmatically:
    from warehouse.sql import ConnectionConfig, TemplateExecutor, open_connection
"""

from .errors import (
    BackendQueryError,
    ConfigError,
    ConnectionFailed,
    ConnectionUnavailable,
    InvalidHandle,
    TemplateNotFound,
    UnknownDriver,
    UnresolvedPlaceholder,
    WarehouseError,
)
from .template import (
    apply_limit_to_query,
    find_placeholders,
    load_template_file,
    resolve_template,
)
from .connection import (
    ConnectionConfig,
    ConnectionHandle,
    close_connection,
    escape_literal,
    open_connection,
)
from .executor import (
    DryRun,
    ExecutionMode,
    ExecutionOptions,
    ResultSet,
    SendResult,
    TemplateExecutor,
    execute,
)

__all__ = [
    'BackendQueryError',
    'ConfigError',
    'ConnectionFailed',
    'ConnectionUnavailable',
    'InvalidHandle',
    'TemplateNotFound',
    'UnknownDriver',
    'UnresolvedPlaceholder',
    'WarehouseError',
    'apply_limit_to_query',
    'find_placeholders',
    'load_template_file',
    'resolve_template',
    'ConnectionConfig',
    'ConnectionHandle',
    'close_connection',
    'escape_literal',
    'open_connection',
    'DryRun',
    'ExecutionMode',
    'ExecutionOptions',
    'ResultSet',
    'SendResult',
    'TemplateExecutor',
    'execute',
]
