import os
import sqlite3

import pytest

from warehouse.common import config as config_module
from warehouse.sql import ConnectionConfig, ConnectionHandle, open_connection


PUBS = [
    (1, 2005), (2, 2005),
    (3, 2006), (4, 2006), (5, 2006),
    (6, 2007),
]


class FakeCursor:
    def __init__(self, connection):
        self.connection = connection
        self.description = None
        self.rowcount = -1
        self._rows = []

    def execute(self, statement):
        self.connection.statements.append(statement)
        if self.connection.error is not None:
            raise self.connection.error
        self.description = self.connection.description
        self.rowcount = self.connection.rowcount
        self._rows = list(self.connection.rows)

    def fetchall(self):
        return self._rows

    def close(self):
        pass


class FakeConnection:
    """DB-API double that records every statement it is asked to run."""

    def __init__(self, rows=(), columns=('value',), rowcount=-1, error=None):
        self.rows = rows
        self.description = [(name, None, None, None, None, None, None) for name in columns]
        self.rowcount = rowcount
        self.error = error
        self.statements = []
        self.close_calls = 0

    @property
    def calls(self):
        return len(self.statements)

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        self.close_calls += 1


@pytest.fixture
def sqlite_config():
    return ConnectionConfig(driver='sqlite', database=':memory:', table='pubs')


@pytest.fixture
def fake_connection():
    return FakeConnection()


@pytest.fixture
def fake_handle(fake_connection, sqlite_config):
    return ConnectionHandle(fake_connection, sqlite_config)


@pytest.fixture
def pubs_handle(sqlite_config):
    """In-memory SQLite backend seeded with publications for 2005-2007."""
    handle = open_connection(sqlite_config)
    cursor = handle.cursor()
    cursor.execute("CREATE TABLE pubs (id INTEGER PRIMARY KEY, year INTEGER)")
    cursor.executemany("INSERT INTO pubs (id, year) VALUES (?, ?)", PUBS)
    cursor.close()
    yield handle
    if not handle.closed:
        handle.close()


@pytest.fixture
def pubs_db(tmp_path):
    """SQLite file seeded with publications for 2005-2007."""
    path = tmp_path / "pubs.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE pubs (id INTEGER PRIMARY KEY, year INTEGER)")
    conn.executemany("INSERT INTO pubs (id, year) VALUES (?, ?)", PUBS)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Environment without WAREHOUSE_* variables, .env or connections file."""
    environ = {key: value for key, value in os.environ.items() if not key.startswith('WAREHOUSE_')}
    environ['WAREHOUSE_CONNECTIONS_FILE'] = str(tmp_path / 'connections.toml')
    monkeypatch.setattr(os, 'environ', environ)
    monkeypatch.setattr(config_module, 'ENV_PATH', tmp_path / '.env')
    return environ
