"""SQL that differs between source engines: paging, row counts and catalog lookups."""
from .errors import ConfigError
from .serializer import prepare_row

ORACLE = 'oracle'
POSTGRES = 'postgres'
SQLSERVER = 'sqlserver'

DIALECT_ALIASES = {
    'oracle': ORACLE, 'godror': ORACLE,
    'postgres': POSTGRES, 'postgresql': POSTGRES,
    'sqlserver': SQLSERVER, 'mssql': SQLSERVER,
}


def normalize_dialect(tag):
    """Maps a configured driver tag onto one of the supported dialects."""
    dialect = DIALECT_ALIASES.get((tag or '').strip().lower())
    if dialect is None:
        raise ConfigError(f"Unsupported driver '{tag}'. Expected one of: {', '.join(sorted(DIALECT_ALIASES))}")
    return dialect


# --- Paginated reads ---

def page_query(dialect, schema, table, columns, offset, limit):
    """Builds the SELECT returning rows [offset, offset + limit) of a table."""
    cols = ', '.join(columns)
    if dialect == ORACLE:
        # ROWNUM windowing works on engines without OFFSET/FETCH
        return f"""
            SELECT {cols} FROM (
                SELECT t.*, ROWNUM rnum FROM (
                    SELECT {cols} FROM {schema}.{table}
                ) t
                WHERE ROWNUM <= {offset + limit}
            )
            WHERE rnum > {offset}"""
    elif dialect == POSTGRES:
        return f"SELECT {cols} FROM {schema}.{table} LIMIT {limit} OFFSET {offset}"
    elif dialect == SQLSERVER:
        return (f"SELECT {cols} FROM {schema}.{table} "
                f"ORDER BY (SELECT NULL) OFFSET {offset} ROWS FETCH NEXT {limit} ROWS ONLY")
    raise ConfigError(f"Unsupported dialect: {dialect}")


def fetch_page(database, table, columns, offset, limit):
    """
    Fetches one page of rows from the source. Holds no state between calls.

    Rows are prepared before the connection goes back to the pool, since LOB
    locators can only be read through the connection that fetched them.
    """
    query = page_query(database.dialect, database.schema, table, columns, offset, limit)
    with database.connection() as conn:
        cursor = conn.cursor()
        try:
            cursor.arraysize = limit
            cursor.execute(query)
            return [prepare_row(row) for row in cursor.fetchall()]
        finally:
            cursor.close()


def count_query(schema, table):
    return f"SELECT COUNT(*) FROM {schema}.{table}"


def count_rows(database, table):
    """Returns the number of rows of a table in the database's schema."""
    with database.connection() as conn:
        cursor = conn.cursor()
        try:
            cursor.execute(count_query(database.schema, table))
            return int(cursor.fetchone()[0])
        finally:
            cursor.close()


# --- Catalog queries ---
# Each returns (sql, params) in the driver's own bind style.

def tables_query(dialect, schema):
    if dialect == ORACLE:
        return "SELECT table_name FROM all_tables WHERE owner = UPPER(:owner) ORDER BY table_name", {'owner': schema}
    elif dialect == POSTGRES:
        return ("SELECT table_name FROM information_schema.tables "
                "WHERE table_schema = %s AND table_type = 'BASE TABLE' ORDER BY table_name"), (schema,)
    elif dialect == SQLSERVER:
        return ("SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
                "WHERE TABLE_SCHEMA = ? AND TABLE_TYPE = 'BASE TABLE' ORDER BY TABLE_NAME"), (schema,)
    raise ConfigError(f"Unsupported dialect: {dialect}")


def columns_query(dialect, schema, table):
    if dialect == ORACLE:
        return ("SELECT column_name FROM all_tab_columns "
                "WHERE table_name = :table_name AND owner = UPPER(:owner) ORDER BY column_id"), \
            {'table_name': table, 'owner': schema}
    elif dialect == POSTGRES:
        return ("SELECT column_name FROM information_schema.columns "
                "WHERE table_name = %s AND table_schema = %s ORDER BY ordinal_position"), (table, schema)
    elif dialect == SQLSERVER:
        return ("SELECT COLUMN_NAME FROM INFORMATION_SCHEMA.COLUMNS "
                "WHERE TABLE_NAME = ? AND TABLE_SCHEMA = ? ORDER BY ORDINAL_POSITION"), (table, schema)
    raise ConfigError(f"Unsupported dialect: {dialect}")


def dependencies_query(dialect, schema, table):
    """Tables referenced by the foreign keys of `table`."""
    if dialect == ORACLE:
        return """
            SELECT DISTINCT a.table_name
            FROM all_constraints a
            JOIN all_constraints b
              ON b.r_constraint_name = a.constraint_name
             AND b.r_owner = a.owner
            WHERE b.table_name = :table_name AND b.owner = UPPER(:owner) AND b.constraint_type = 'R'
        """, {'table_name': table, 'owner': schema}
    elif dialect == POSTGRES:
        return """
            SELECT DISTINCT ccu.table_name
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.constraint_column_usage AS ccu
              ON ccu.constraint_name = tc.constraint_name
             AND ccu.table_schema = tc.table_schema
            WHERE tc.constraint_type = 'FOREIGN KEY' AND tc.table_name = %s AND tc.table_schema = %s
        """, (table, schema)
    elif dialect == SQLSERVER:
        return """
            SELECT DISTINCT rt.name
            FROM sys.foreign_keys fk
            JOIN sys.tables pt ON pt.object_id = fk.parent_object_id
            JOIN sys.tables rt ON rt.object_id = fk.referenced_object_id
            WHERE pt.name = ? AND SCHEMA_NAME(pt.schema_id) = ?
        """, (table, schema)
    raise ConfigError(f"Unsupported dialect: {dialect}")
