"""Builds the tables file from the source catalog instead of writing it by hand."""
import logging

from .connections import init_oracle_client, open_database
from .dialects import ORACLE, columns_query, dependencies_query, tables_query
from .errors import MigrationError
from .settings import make_table, write_tables


def _column(conn, query):
    sql, params = query
    cursor = conn.cursor()
    try:
        cursor.execute(sql, params)
        return [row[0] for row in cursor.fetchall()]
    finally:
        cursor.close()


def introspect_tables(database):
    """Lists the schema's tables with their ordered columns and the tables their foreign keys reference."""
    dialect, schema = database.dialect, database.schema
    tables = []
    with database.connection() as conn:
        try:
            names = _column(conn, tables_query(dialect, schema))
        except Exception as e:
            raise MigrationError(None, "list tables", e) from e

        for name in names:
            try:
                columns = _column(conn, columns_query(dialect, schema, name))
                dependencies = _column(conn, dependencies_query(dialect, schema, name))
            except Exception as e:
                raise MigrationError(name, "introspect", e) from e
            if not columns:
                logging.warning(f"Skipping table {name}: no columns visible in schema {schema}.")
                continue
            tables.append(make_table(name, columns, dependencies))
            logging.debug(f"[{name}] {len(columns)} columns, depends on: {', '.join(dependencies) or '-'}")

    logging.info(f"Found {len(tables)} tables in source schema {schema}.")
    return tables


def recreate_tables_file(settings):
    if settings.source.driver == ORACLE:
        init_oracle_client(settings.oracle_client_lib_dir)
    source = open_database(settings.source, 1, "source")
    try:
        tables = introspect_tables(source)
    finally:
        source.close()
    write_tables(settings.tables_path, tables)
    return tables
