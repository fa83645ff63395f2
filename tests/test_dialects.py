from unittest.mock import Mock

import oracledb
import pytest

from conftest import create_table
from table_migrator.dialects import (
    ORACLE, POSTGRES, SQLSERVER, columns_query, count_query, count_rows, dependencies_query,
    fetch_page, normalize_dialect, page_query, tables_query,
)
from table_migrator.connections import Database
from table_migrator.errors import ConfigError


@pytest.mark.parametrize("tag,expected", [
    ("godror", ORACLE), ("Oracle", ORACLE), ("postgres", POSTGRES),
    ("postgresql", POSTGRES), ("mssql", SQLSERVER), (" sqlserver ", SQLSERVER),
])
def test_normalize_dialect(tag, expected):
    assert normalize_dialect(tag) == expected


def test_unknown_dialect_is_a_config_error():
    with pytest.raises(ConfigError):
        normalize_dialect("db2")
    with pytest.raises(ConfigError):
        normalize_dialect(None)


def test_oracle_page_uses_rownum_window():
    query = page_query(ORACLE, "HR", "EMP", ["ID", "NAME"], 2000, 1000)
    assert "ROWNUM <= 3000" in query
    assert "rnum > 2000" in query
    assert "SELECT ID, NAME FROM HR.EMP" in query
    assert "OFFSET" not in query


def test_postgres_page_uses_limit_offset():
    assert page_query(POSTGRES, "public", "emp", ["id"], 500, 100) == \
        "SELECT id FROM public.emp LIMIT 100 OFFSET 500"


def test_sqlserver_page_uses_offset_fetch():
    query = page_query(SQLSERVER, "dbo", "emp", ["id", "name"], 0, 10)
    assert query.startswith("SELECT id, name FROM dbo.emp ")
    assert query.endswith("OFFSET 0 ROWS FETCH NEXT 10 ROWS ONLY")


def test_count_query_is_schema_scoped():
    assert count_query("HR", "EMP") == "SELECT COUNT(*) FROM HR.EMP"


def test_catalog_queries_use_driver_bind_style():
    sql, params = tables_query(ORACLE, "hr")
    assert ":owner" in sql and params == {"owner": "hr"}
    sql, params = columns_query(POSTGRES, "public", "emp")
    assert sql.count("%s") == 2 and params == ("emp", "public")
    sql, params = dependencies_query(SQLSERVER, "dbo", "emp")
    assert sql.count("?") == 2 and params == ("emp", "dbo")


def test_fetch_page_and_count_against_a_database(source, source_path):
    create_table(source_path, "items", row_count=25)

    assert count_rows(source, "items") == 25
    first = fetch_page(source, "items", ["id", "label"], 0, 10)
    last = fetch_page(source, "items", ["id", "label"], 20, 10)
    assert len(first) == 10
    assert len(last) == 5
    assert fetch_page(source, "items", ["id", "label"], 30, 10) == []


def test_lobs_are_read_before_the_connection_is_released():
    events = []
    lob = Mock(spec=oracledb.LOB)
    lob.size.return_value = 4
    lob.read.side_effect = lambda: events.append("read") or "text"
    conn = Mock()
    conn.cursor.return_value.fetchall.return_value = [(1, lob)]
    source = Database(ORACLE, "HR", lambda: conn, lambda c: events.append("release"))

    rows = fetch_page(source, "DOCS", ["ID", "BODY"], 0, 10)

    assert rows == [(1, "text")]
    assert events == ["read", "release"]
