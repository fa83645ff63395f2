import argparse
import logging
import os
import sys
from datetime import datetime
from functools import partial

from .connections import init_oracle_client, open_database
from .dialects import ORACLE, count_rows
from .errors import CircularDependencyError, ConfigError, MigrationError
from .progress import ProgressTracker
from .recreate import recreate_tables_file
from .replicate import migrate_table
from .scheduler import plan_waves, run_waves
from .settings import DEFAULT_LOG_DIR, load_settings, load_tables

# --- 1. Setup and Initialization ---

def setup_logging(log_dir=DEFAULT_LOG_DIR, level=logging.INFO):
    """Configures logging to a timestamped file and the console."""
    os.makedirs(log_dir, exist_ok=True)
    log_filename = os.path.join(log_dir, f"migration_{datetime.now():%Y-%m-%d_%H-%M-%S}.log")

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] [%(threadName)s] %(message)s",
        handlers=[
            logging.FileHandler(log_filename),
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )
    # Silence the noisy oracledb logger unless it's an error
    logging.getLogger("oracledb").setLevel(logging.ERROR)
    logging.info(f"Logging initialized, writing to {log_filename}.")


# --- 2. Row counts ---

def count_source_rows(source, tables):
    """Creates every table's progress counter from a COUNT(*) on the source, before anything runs."""
    tracker = ProgressTracker()
    for table in tables:
        try:
            total = count_rows(source, table.name)
        except Exception as e:
            raise MigrationError(table.name, "count", e) from e
        tracker.register(table.name, total)
        logging.info(f"Table {table.name}: {total} rows in source.")
    return tracker


# --- 3. Main Orchestration ---

def run_migration(settings, show_progress=True):
    """Migrates every table of the tables file in dependency order. Raises on the first failure."""
    tables = load_tables(settings.tables_path)
    waves = plan_waves(tables)
    if not waves:
        logging.info("No tables to migrate.")
        return ProgressTracker()

    pool_size = settings.max_workers or max(len(wave) for wave in waves)
    logging.info(f"Planned {len(waves)} waves for {len(tables)} tables, up to {pool_size} in parallel.")

    if settings.source.driver == ORACLE:
        init_oracle_client(settings.oracle_client_lib_dir)
    source = open_database(settings.source, pool_size, "source")
    try:
        target = open_database(settings.target, pool_size, "target")
        try:
            tracker = count_source_rows(source, tables)
            task = partial(_migrate, source, target, settings, tracker)
            run_waves(waves, task, max_workers=settings.max_workers, show_progress=show_progress)
        finally:
            target.close()
    finally:
        source.close()

    logging.info("Data migration complete.")
    return tracker


def _migrate(source, target, settings, tracker, table, abort):
    return migrate_table(source, target, table, settings.batch_size, tracker,
                         report_interval=settings.report_interval, abort=abort)


# --- 4. Main Entry Point ---

def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Copy table data between databases in foreign-key dependency order.")
    parser.add_argument("--config", default="config.ini", help="Path to the INI configuration file.")
    parser.add_argument("--recreate", action="store_true",
                        help="Rebuild the tables file from the source catalog instead of migrating.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_dir, getattr(logging, args.log_level))

    try:
        if args.recreate:
            recreate_tables_file(settings)
        else:
            run_migration(settings)
    except (ConfigError, CircularDependencyError) as e:
        logging.critical(f"Cannot start migration: {e}")
        return 1
    except MigrationError as e:
        logging.critical(f"Migration halted: {e}", exc_info=e.cause)
        return 1
    except KeyboardInterrupt:
        logging.warning("Ctrl+C detected! Migration interrupted; tables in progress may be partially copied.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
