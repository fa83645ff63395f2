"""Pooled connections to the source and target databases."""
import logging
from contextlib import contextmanager

import oracledb
from psycopg2 import pool as pg_pool

from .dialects import ORACLE, POSTGRES, SQLSERVER
from .errors import ConfigError, MigrationError


class Database:
    """One side of the migration: its dialect, schema and a pool of connections."""

    def __init__(self, dialect, schema, getconn, putconn, closeall=None):
        self.dialect = dialect
        self.schema = schema
        self._getconn = getconn
        self._putconn = putconn
        self._closeall = closeall

    @contextmanager
    def connection(self):
        conn = self._getconn()
        try:
            yield conn
        finally:
            self._putconn(conn)

    def close(self):
        if self._closeall is not None:
            self._closeall()


def _option(options, key, default=None):
    value = options.get(key, default)
    if value is None:
        raise ConfigError(f"Missing connection option '{key}'.")
    return value


def _oracle_pool(options, pool_size):
    dsn = options.get('dsn') or \
        f"{_option(options, 'host')}:{options.get('port', '1521')}/{_option(options, 'service_name')}"
    pool = oracledb.create_pool(
        user=_option(options, 'user'), password=_option(options, 'password'), dsn=dsn,
        min=1, max=pool_size, increment=1,
    )
    return pool.acquire, pool.release, pool.close


def _postgres_pool(options, pool_size):
    # timestamps written without an offset are read as UTC
    session = options.get('options', '-c timezone=UTC')
    if options.get('dsn'):
        pool = pg_pool.ThreadedConnectionPool(1, pool_size, dsn=options['dsn'], options=session)
    else:
        pool = pg_pool.ThreadedConnectionPool(
            1, pool_size,
            host=_option(options, 'host'), port=options.get('port', '5432'),
            dbname=_option(options, 'dbname'), user=_option(options, 'user'),
            password=_option(options, 'password'), options=session,
        )
    return pool.getconn, pool.putconn, pool.closeall


def _sqlserver_connect(options):
    # imported here so the ODBC driver manager is only needed for SQL Server sources
    import pyodbc

    conn_str = options.get('dsn') or (
        f"DRIVER={{{options.get('odbc_driver', 'ODBC Driver 17 for SQL Server')}}};"
        f"SERVER={_option(options, 'host')},{options.get('port', '1433')};"
        f"DATABASE={_option(options, 'database')};"
        f"UID={_option(options, 'user')};"
        f"PWD={_option(options, 'password')};"
    )
    # pyodbc leaves pooling to the ODBC driver manager
    return (lambda: pyodbc.connect(conn_str)), (lambda conn: conn.close()), None


def open_database(config, pool_size, label):
    """Opens a pool for one side of the migration, sized for `pool_size` concurrent users."""
    try:
        if config.driver == ORACLE:
            handles = _oracle_pool(config.options, pool_size)
        elif config.driver == POSTGRES:
            handles = _postgres_pool(config.options, pool_size)
        elif config.driver == SQLSERVER:
            handles = _sqlserver_connect(config.options)
        else:
            raise ConfigError(f"Unsupported driver: {config.driver}")
        getconn, putconn, _ = handles
        putconn(getconn())
    except ConfigError:
        raise
    except Exception as e:
        raise MigrationError(None, f"{label} connect", e) from e

    logging.info(f"Connected to {label} ({config.driver}, schema {config.schema}, pool size {pool_size}).")
    return Database(config.driver, config.schema, *handles)


def init_oracle_client(lib_dir):
    """Switches oracledb to thick mode when an Instant Client directory is configured."""
    if not lib_dir:
        return
    try:
        oracledb.init_oracle_client(lib_dir=lib_dir)
        logging.info(f"Oracle Instant Client initialized from: {lib_dir}")
    except oracledb.Error as e:
        raise MigrationError(None, "oracle client init", e) from e
