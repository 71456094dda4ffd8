"""Unit tests for warehouse.sql.executor."""

import sqlite3

import pytest

from warehouse.sql import (
    BackendQueryError,
    ConnectionUnavailable,
    DryRun,
    ExecutionMode,
    ExecutionOptions,
    ResultSet,
    SendResult,
    TemplateExecutor,
    UnresolvedPlaceholder,
    escape_literal,
    execute,
    resolve_template,
)
from warehouse.sql.output import save_as_csv

from .conftest import FakeConnection

YEARLY = "SELECT year, COUNT(*) AS items FROM @{table} GROUP BY year ORDER BY year"
MULTILINE = "SELECT *\nFROM @{table}\nWHERE year = @{y}"


class TestDryRun:
    @pytest.mark.parametrize("template,context", [
        (YEARLY, {"table": "pubs"}),
        (MULTILINE, {"table": "events", "y": 2016}),
        ("DELETE FROM @{t}", {"t": "staging"}),
    ])
    def test_matches_resolve_and_makes_no_calls(self, fake_handle, fake_connection, template, context):
        executor = TemplateExecutor(fake_handle)
        for mode in ExecutionMode:
            result = executor.execute(template, context, mode, ExecutionOptions(dry_run=True))
            assert isinstance(result, DryRun)
            assert result.statement == resolve_template(template, context)
        assert fake_connection.calls == 0

    def test_needs_no_connection(self):
        result = TemplateExecutor().execute(YEARLY, {"table": "pubs"}, options=ExecutionOptions(dry_run=True))
        assert result.statement == "SELECT year, COUNT(*) AS items FROM pubs GROUP BY year ORDER BY year"

    def test_unresolved_still_fails(self):
        with pytest.raises(UnresolvedPlaceholder):
            TemplateExecutor().execute(YEARLY, {}, options=ExecutionOptions(dry_run=True))


class TestDebugOutput:
    def test_debug_emits_full_statement(self, fake_handle):
        lines = []
        TemplateExecutor(fake_handle, sink=lines.append).execute(
            MULTILINE, {"table": "events", "y": 1}, options=ExecutionOptions(debug=True))
        assert lines == ["SELECT *\nFROM events\nWHERE year = 1"]

    def test_echo_emits_first_line(self, fake_handle):
        lines = []
        TemplateExecutor(fake_handle, sink=lines.append).execute(
            "\n  SELECT *\nFROM @{table}", {"table": "events"}, options=ExecutionOptions(echo=True))
        assert lines == ["SELECT *"]

    def test_debug_wins_over_echo(self, fake_handle):
        lines = []
        TemplateExecutor(fake_handle, sink=lines.append).execute(
            MULTILINE, {"table": "events", "y": 1}, options=ExecutionOptions(debug=True, echo=True))
        assert lines == ["SELECT *\nFROM events\nWHERE year = 1"]

    def test_silent_by_default(self, fake_handle):
        lines = []
        TemplateExecutor(fake_handle, sink=lines.append).execute(MULTILINE, {"table": "events", "y": 1})
        assert lines == []

    def test_emitted_before_dry_run_returns(self):
        lines = []
        TemplateExecutor(sink=lines.append).execute(
            MULTILINE, {"table": "events", "y": 1}, options=ExecutionOptions(debug=True, dry_run=True))
        assert lines == ["SELECT *\nFROM events\nWHERE year = 1"]


class TestConnectionDiscipline:
    def test_no_handle(self):
        with pytest.raises(ConnectionUnavailable):
            TemplateExecutor().execute("SELECT 1")

    def test_execute_after_close(self, pubs_handle):
        executor = TemplateExecutor(pubs_handle)
        pubs_handle.close()
        with pytest.raises(ConnectionUnavailable):
            executor.execute(YEARLY, {"table": "pubs"})

    def test_resolution_happens_before_connection_check(self):
        with pytest.raises(UnresolvedPlaceholder):
            TemplateExecutor().execute(YEARLY, {})

    def test_one_round_trip_per_call(self, fake_handle, fake_connection):
        executor = TemplateExecutor(fake_handle)
        executor.fetch("SELECT @{x}", {"x": 1})
        executor.send("DELETE FROM t")
        assert fake_connection.statements == ["SELECT 1", "DELETE FROM t"]

    def test_unresolved_makes_no_call(self, fake_handle, fake_connection):
        with pytest.raises(UnresolvedPlaceholder):
            TemplateExecutor(fake_handle).execute("SELECT @{x}", {})
        assert fake_connection.calls == 0


class TestFetch:
    def test_yearly_counts_scenario(self, pubs_handle):
        result = TemplateExecutor(pubs_handle).execute(YEARLY, {"table": "pubs"}, ExecutionMode.FETCH)
        assert isinstance(result, ResultSet)
        assert result.columns == ["year", "items"]
        assert result.rows == [
            {"year": 2005, "items": 2},
            {"year": 2006, "items": 3},
            {"year": 2007, "items": 1},
        ]
        assert len(result) == 3
        assert result.statement == "SELECT year, COUNT(*) AS items FROM pubs GROUP BY year ORDER BY year"

    def test_row_key_order_matches_select_list(self, pubs_handle):
        result = TemplateExecutor(pubs_handle).fetch("SELECT year AS y, id FROM pubs WHERE id = 1")
        assert list(result.rows[0]) == ["y", "id"]
        assert result.tuples() == [(2005, 1)]
        assert result.column("id") == [1]

    def test_unknown_column(self, pubs_handle):
        result = TemplateExecutor(pubs_handle).fetch("SELECT id FROM pubs")
        with pytest.raises(KeyError):
            result.column("year")

    def test_empty_result_is_not_an_error(self, pubs_handle):
        result = TemplateExecutor(pubs_handle).fetch("SELECT id FROM pubs WHERE year = @{y}", {"y": 1999})
        assert result.columns == ["id"]
        assert result.rows == []

    def test_escaped_literal_in_context(self, pubs_handle):
        executor = TemplateExecutor(pubs_handle)
        executor.send("CREATE TABLE authors (name TEXT)")
        name = escape_literal("O'Brien", pubs_handle)
        executor.send("INSERT INTO authors (name) VALUES (@{name})", {"name": name})
        result = executor.fetch("SELECT name FROM authors WHERE name = @{name}", {"name": name})
        assert result.column("name") == ["O'Brien"]

    def test_duplicate_column_names_keep_every_value(self, pubs_handle, tmp_path):
        result = TemplateExecutor(pubs_handle).fetch(
            "SELECT a.id, b.id FROM pubs a JOIN pubs b ON b.id = a.id + 1 WHERE a.id = 1")
        assert result.columns == ["id", "id"]
        assert result.tuples() == [(1, 2)]
        assert result.duplicate_columns == ["id"]
        with pytest.raises(ValueError, match="id"):
            result.rows
        with pytest.raises(ValueError):
            result.column("id")

        path = tmp_path / "joined.csv"
        save_as_csv(path, result)
        assert path.read_text().splitlines() == ["id,id", "1,2"]

    def test_fetch_without_result_set_fails(self, pubs_handle):
        with pytest.raises(BackendQueryError):
            TemplateExecutor(pubs_handle).fetch("CREATE TABLE t (x INTEGER)")

    def test_execute_file(self, pubs_handle, tmp_path):
        path = tmp_path / "yearly.sql"
        path.write_text(YEARLY)
        result = TemplateExecutor(pubs_handle).execute_file(path, {"table": "pubs"})
        assert result.column("items") == [2, 3, 1]


class TestSend:
    def test_insert_reports_rowcount(self, pubs_handle):
        result = TemplateExecutor(pubs_handle).send(
            "INSERT INTO @{table} (id, year) VALUES (7, 2008), (8, 2008)", {"table": "pubs"})
        assert isinstance(result, SendResult)
        assert result.rowcount == 2

    def test_send_is_visible_to_later_fetch(self, pubs_handle):
        executor = TemplateExecutor(pubs_handle)
        executor.send("DELETE FROM pubs WHERE year = @{y}", {"y": 2006})
        assert executor.fetch(YEARLY, {"table": "pubs"}).column("year") == [2005, 2007]

    def test_unknown_rowcount_is_none(self, fake_handle):
        assert TemplateExecutor(fake_handle).send("CREATE TABLE t (x INT)").rowcount is None


class TestBackendErrors:
    def test_syntax_error_wrapped(self, pubs_handle):
        with pytest.raises(BackendQueryError) as exc_info:
            TemplateExecutor(pubs_handle).fetch("SELEC * FROM @{table}", {"table": "pubs"})
        assert exc_info.value.statement == "SELEC * FROM pubs"
        assert isinstance(exc_info.value.__cause__, sqlite3.Error)

    def test_missing_table(self, pubs_handle):
        with pytest.raises(BackendQueryError):
            TemplateExecutor(pubs_handle).fetch("SELECT * FROM @{table}", {"table": "nope"})

    def test_not_retried(self, sqlite_config):
        from warehouse.sql import ConnectionHandle

        connection = FakeConnection(error=sqlite3.OperationalError("timeout"))
        handle = ConnectionHandle(connection, sqlite_config)
        with pytest.raises(BackendQueryError, match="timeout"):
            TemplateExecutor(handle).send("VACUUM")
        assert connection.calls == 1


class TestModuleExecute:
    def test_module_level_execute(self, pubs_handle):
        result = execute(pubs_handle, YEARLY, {"table": "pubs"})
        assert len(result) == 3

    def test_module_level_dry_run(self):
        lines = []
        result = execute(None, "SELECT @{x}", {"x": 1}, options=ExecutionOptions(dry_run=True, echo=True),
                         sink=lines.append)
        assert result.statement == "SELECT 1"
        assert lines == ["SELECT 1"]
