"""Preparing fetched rows for the bulk insert. psycopg2 adapts the values themselves."""
from datetime import datetime, timezone

import oracledb


def prepare_value(value):
    """Reads Oracle LOBs into their content and moves aware datetimes to UTC."""
    if isinstance(value, oracledb.LOB):
        return value.read() if value.size() > 0 else ""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


def prepare_row(row):
    return tuple(prepare_value(v) for v in row)


def insert_statement(schema, table, columns):
    """INSERT for extras.execute_values: every row of a batch goes into the single VALUES %s."""
    return f"INSERT INTO {schema}.{table} ({', '.join(columns)}) VALUES %s"
