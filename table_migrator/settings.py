"""Loading the INI configuration and the JSON tables file."""
import configparser
import json
import logging
import os
from collections import namedtuple

from .dialects import POSTGRES, normalize_dialect
from .errors import ConfigError

Table = namedtuple('Table', ['name', 'columns', 'dependencies'])
DatabaseConfig = namedtuple('DatabaseConfig', ['driver', 'schema', 'options'])
Settings = namedtuple('Settings', [
    'source', 'target', 'batch_size', 'tables_path', 'max_workers',
    'report_interval', 'log_dir', 'oracle_client_lib_dir',
])

DEFAULT_BATCH_SIZE = 1000
DEFAULT_LOG_DIR = "logs"


def make_table(name, columns, dependencies=()):
    return Table(name, tuple(columns), tuple(dependencies or ()))


def _database_config(config, section):
    if not config.has_section(section):
        raise ConfigError(f"Missing [{section}] section in configuration.")
    options = dict(config[section])
    driver = normalize_dialect(options.pop('driver', None))
    schema = options.pop('schema', '').strip()
    if not schema:
        raise ConfigError(f"[{section}] needs a 'schema'.")
    return DatabaseConfig(driver, schema, options)


def _positive_int(config, option, fallback):
    try:
        value = config.getint('settings', option, fallback=fallback)
    except ValueError as e:
        raise ConfigError(f"[settings] {option} must be an integer: {e}") from e
    if value is not None and value <= 0:
        raise ConfigError(f"[settings] {option} must be positive, got {value}.")
    return value


def load_settings(path='config.ini'):
    """Reads the INI file describing both databases and the run settings."""
    config = configparser.ConfigParser()
    if not config.read(path):
        raise ConfigError(f"Configuration file '{path}' not found or is empty.")

    source = _database_config(config, 'source')
    target = _database_config(config, 'target')
    if target.driver != POSTGRES:
        raise ConfigError(f"Only PostgreSQL targets are supported, got '{target.driver}'.")

    try:
        report_interval = config.getfloat('settings', 'report_interval', fallback=1.0)
    except ValueError as e:
        raise ConfigError(f"[settings] report_interval must be a number: {e}") from e

    base_dir = os.path.dirname(os.path.abspath(path))
    tables_path = config.get('settings', 'tables_path', fallback='tables.json')
    return Settings(
        source=source,
        target=target,
        batch_size=_positive_int(config, 'batch_size', DEFAULT_BATCH_SIZE),
        tables_path=os.path.join(base_dir, tables_path),
        max_workers=_positive_int(config, 'max_workers', None),
        report_interval=report_interval,
        log_dir=config.get('settings', 'log_dir', fallback=DEFAULT_LOG_DIR),
        oracle_client_lib_dir=config.get('settings', 'oracle_client_lib_dir', fallback=None),
    )


def load_tables(path):
    """Reads the table descriptors, in file order."""
    if not os.path.exists(path):
        raise ConfigError(f"Tables file not found: {path}")
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Tables file {path} is not valid JSON: {e}") from e

    entries = data.get('tables', []) if isinstance(data, dict) else data
    tables = []
    for entry in entries:
        name = (entry.get('name') or '').strip()
        columns = entry.get('columns') or []
        if not name or not columns:
            raise ConfigError(f"Table entry needs a name and at least one column: {entry}")
        tables.append(make_table(name, columns, entry.get('dependencies')))
    logging.info(f"Found {len(tables)} tables to migrate in '{path}'.")
    return tables


def write_tables(path, tables):
    data = {'tables': [
        {'name': t.name, 'columns': list(t.columns), 'dependencies': list(t.dependencies)}
        for t in tables
    ]}
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
    logging.info(f"Wrote {len(tables)} table definitions to '{path}'.")
