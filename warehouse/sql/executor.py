"""
Template executor: resolve a SQL template, then run it once.

Each call resolves the template exactly once and makes at most one round
trip to the backend. Nothing is retried and no transaction is opened; the
session's autocommit behaviour applies.

    with open_connection(config) as handle:
        executor = TemplateExecutor(handle)
        result = executor.fetch(
            'SELECT year, COUNT(*) AS items FROM @{table} GROUP BY year ORDER BY year',
            {'table': 'pubs'},
        )
        for row in result:
            print(row['year'], row['items'])
"""

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .connection import ConnectionHandle
from .errors import BackendQueryError, ConnectionUnavailable
from .template import load_template_file, resolve_template

logger = logging.getLogger(__name__)


class ExecutionMode(enum.Enum):
    FETCH = 'fetch'  # read query, rows expected
    SEND = 'send'    # DDL/DML, no rows expected


@dataclass(frozen=True)
class ExecutionOptions:
    """
    Per-call switches.

    debug: emit the full resolved statement to the sink before running it
    echo: emit only the first non-blank line of the resolved statement
    dry_run: resolve and return the statement without touching the backend
    """
    debug: bool = False
    echo: bool = False
    dry_run: bool = False


@dataclass
class ResultSet:
    """
    Rows returned by a fetch.

    records holds the rows exactly as the backend returned them. rows is a
    dict view in select-list order, only available when column names are
    unique (a join selecting a.id and b.id has no faithful dict form).
    """
    statement: str
    columns: List[str]
    records: List[Tuple[Any, ...]] = field(default_factory=list)

    @property
    def duplicate_columns(self) -> List[str]:
        return sorted({name for name in self.columns if self.columns.count(name) > 1})

    @property
    def rows(self) -> List[Dict[str, Any]]:
        duplicates = self.duplicate_columns
        if duplicates:
            raise ValueError(
                f"Column name(s) {', '.join(duplicates)} appear more than once; "
                f"alias them in the query or use tuples()"
            )
        return [dict(zip(self.columns, record)) for record in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.rows)

    def tuples(self) -> List[Tuple[Any, ...]]:
        return list(self.records)

    def column(self, name: str) -> List[Any]:
        if name not in self.columns:
            raise KeyError(name)
        if self.columns.count(name) > 1:
            raise ValueError(f"Column name {name} appears more than once")
        index = self.columns.index(name)
        return [record[index] for record in self.records]


@dataclass
class SendResult:
    """Outcome of a send. rowcount is None when the backend does not report it."""
    statement: str
    rowcount: Optional[int] = None


@dataclass
class DryRun:
    """A resolved statement that was not executed."""
    statement: str


ExecutionResult = Union[ResultSet, SendResult, DryRun]


def first_line(statement: str) -> str:
    """First non-blank line of a statement."""
    for line in statement.splitlines():
        if line.strip():
            return line.strip()
    return ''


class TemplateExecutor:
    """
    Resolves and executes SQL templates against one connection handle.

    Args:
        handle: Open connection handle, or None for dry runs only
        sink: Callable receiving debug/echo output (defaults to logger.info)
    """

    def __init__(self, handle: Optional[ConnectionHandle] = None,
                 sink: Optional[Callable[[str], None]] = None):
        self.handle = handle
        self.sink = sink or logger.info

    def resolve(self, template: str, context: Optional[Mapping[str, Any]] = None) -> str:
        return resolve_template(template, context)

    def execute(self, template: str, context: Optional[Mapping[str, Any]] = None,
                mode: ExecutionMode = ExecutionMode.FETCH,
                options: Optional[ExecutionOptions] = None) -> ExecutionResult:
        """
        Resolve the template and run it in the given mode.

        Returns:
            DryRun if options.dry_run, otherwise ResultSet (FETCH) or SendResult (SEND)

        Raises:
            UnresolvedPlaceholder: If the context lacks a placeholder value
            ConnectionUnavailable: If there is no open handle
            BackendQueryError: If the backend fails the statement
        """
        if options is None:
            options = ExecutionOptions()

        statement = resolve_template(template, context)

        if options.debug:
            self.sink(statement)
        elif options.echo:
            self.sink(first_line(statement))

        if options.dry_run:
            return DryRun(statement)

        if self.handle is None or self.handle.closed:
            raise ConnectionUnavailable("No open connection to execute the statement on")

        if mode is ExecutionMode.FETCH:
            return self._fetch(statement)
        return self._send(statement)

    def execute_file(self, path: Union[str, Path], context: Optional[Mapping[str, Any]] = None,
                     mode: ExecutionMode = ExecutionMode.FETCH,
                     options: Optional[ExecutionOptions] = None) -> ExecutionResult:
        """Load a template file and execute it."""
        return self.execute(load_template_file(path), context, mode, options)

    def fetch(self, template: str, context: Optional[Mapping[str, Any]] = None,
              options: Optional[ExecutionOptions] = None) -> ExecutionResult:
        return self.execute(template, context, ExecutionMode.FETCH, options)

    def send(self, template: str, context: Optional[Mapping[str, Any]] = None,
             options: Optional[ExecutionOptions] = None) -> ExecutionResult:
        return self.execute(template, context, ExecutionMode.SEND, options)

    def _fetch(self, statement: str) -> ResultSet:
        errors = self.handle.driver.errors()
        try:
            cursor = self.handle.cursor()
        except errors as e:
            raise BackendQueryError(statement, str(e)) from e

        try:
            cursor.execute(statement)
            if cursor.description is None:
                raise BackendQueryError(statement, "Statement returned no result set (use send mode)")
            columns = [desc[0] for desc in cursor.description]
            records = [tuple(row) for row in cursor.fetchall()]
        except errors as e:
            raise BackendQueryError(statement, str(e)) from e
        finally:
            cursor.close()

        logger.debug(f"Fetched {len(records)} rows, columns: {', '.join(columns)}")
        return ResultSet(statement, columns, records)

    def _send(self, statement: str) -> SendResult:
        errors = self.handle.driver.errors()
        try:
            cursor = self.handle.cursor()
        except errors as e:
            raise BackendQueryError(statement, str(e)) from e

        try:
            cursor.execute(statement)
            rowcount = cursor.rowcount
        except errors as e:
            raise BackendQueryError(statement, str(e)) from e
        finally:
            cursor.close()

        if rowcount is None or rowcount < 0:
            rowcount = None
        logger.debug(f"Statement sent, rowcount: {rowcount}")
        return SendResult(statement, rowcount)


def execute(handle: Optional[ConnectionHandle], template: str,
            context: Optional[Mapping[str, Any]] = None,
            mode: ExecutionMode = ExecutionMode.FETCH,
            options: Optional[ExecutionOptions] = None,
            sink: Optional[Callable[[str], None]] = None) -> ExecutionResult:
    """One-off execution without keeping an executor around."""
    return TemplateExecutor(handle, sink).execute(template, context, mode, options)
