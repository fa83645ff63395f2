"""
Shared fixtures.

SQLite files stand in for the pooled source and target databases: every
checkout opens a fresh sqlite3 connection in the calling thread, and the
PostgreSQL paging/count/insert statements run unchanged on SQLite with the
"main" schema. The connection is wrapped so that psycopg2's extras helpers
can build their statements on it, with psycopg2's own value adapters.
"""
import sqlite3

import pytest
from psycopg2.extensions import adapt

from table_migrator.connections import Database
from table_migrator.dialects import POSTGRES
from table_migrator.progress import ProgressTracker
from table_migrator.settings import make_table


def quote(value):
    adapted = adapt(value)
    if hasattr(adapted, "encoding"):
        adapted.encoding = "utf8"
    return adapted.getquoted()


def mogrify(query, args):
    """What cursor.mogrify returns for positional %s placeholders, without a server."""
    if isinstance(query, str):
        query = query.encode("utf8")
    return query % tuple(quote(a) for a in args)


class SQLiteCursor:
    def __init__(self, connection):
        self.connection = connection
        self._cursor = connection.raw.cursor()

    @property
    def arraysize(self):
        return self._cursor.arraysize

    @arraysize.setter
    def arraysize(self, value):
        self._cursor.arraysize = value

    def mogrify(self, query, args):
        return mogrify(query, args)

    def execute(self, query, params=None):
        if isinstance(query, bytes):
            query = query.decode("utf8")
        self._cursor.execute(query, params or ())

    def fetchall(self):
        return self._cursor.fetchall()

    def fetchone(self):
        return self._cursor.fetchone()

    def close(self):
        self._cursor.close()


class SQLiteConnection:
    encoding = "UTF8"

    def __init__(self, path):
        self.raw = sqlite3.connect(path, timeout=30)

    def cursor(self):
        return SQLiteCursor(self)

    def commit(self):
        self.raw.commit()

    def rollback(self):
        self.raw.rollback()

    def close(self):
        self.raw.close()


def sqlite_database(path, schema="main"):
    return Database(POSTGRES, schema, lambda: SQLiteConnection(path), lambda conn: conn.close())


def create_table(path, name, row_count=0, with_table=True):
    """Creates `name(id INTEGER, label TEXT)` holding `row_count` rows."""
    conn = sqlite3.connect(path)
    try:
        if with_table:
            conn.execute(f"CREATE TABLE {name} (id INTEGER, label TEXT)")
            conn.executemany(
                f"INSERT INTO {name} (id, label) VALUES (?, ?)",
                [(i, f"{name}-{i}") for i in range(1, row_count + 1)],
            )
        conn.commit()
    finally:
        conn.close()


def read_rows(path, name):
    conn = sqlite3.connect(path)
    try:
        return conn.execute(f"SELECT id, label FROM {name} ORDER BY id").fetchall()
    finally:
        conn.close()


def tracker_for(**totals):
    tracker = ProgressTracker()
    for name, total in totals.items():
        tracker.register(name, total)
    return tracker


def table(name, *dependencies):
    return make_table(name, ["id", "label"], dependencies)


@pytest.fixture
def source_path(tmp_path):
    return str(tmp_path / "source.db")


@pytest.fixture
def target_path(tmp_path):
    return str(tmp_path / "target.db")


@pytest.fixture
def source(source_path):
    return sqlite_database(source_path)


@pytest.fixture
def target(target_path):
    return sqlite_database(target_path)
