import logging
import time

from psycopg2 import extras

from .dialects import fetch_page
from .errors import MigrationAborted, MigrationError
from .progress import ProgressReporter
from .serializer import insert_statement


def execute_insert(target, table_name, columns, rows):
    """Writes one batch to the target schema in a single statement and commits it."""
    insert_sql = insert_statement(target.schema, table_name, columns)
    with target.connection() as conn:
        cursor = conn.cursor()
        try:
            extras.execute_values(cursor, insert_sql, rows, page_size=len(rows))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()


def migrate_table(source, target, table, batch_size, tracker, report_interval=1.0, abort=None):
    """
    Copies every row of one table from source to target, one page at a time.

    A page shorter than `batch_size` is the last one, so a table whose row
    count is a multiple of `batch_size` ends with one extra, empty fetch (no
    insert is issued for it). The table's counter is only advanced once a
    batch has been committed. Any failure is raised as a MigrationError naming
    the table and the stage that failed.
    """
    columns = list(table.columns)
    started_at = time.monotonic()
    logging.info(f"--- Starting migration for table: {table.name} ---")

    with ProgressReporter(tracker, table.name, started_at, report_interval):
        offset = 0
        while True:
            if abort is not None and abort.is_set():
                logging.warning(f"[{table.name}] Stopping at offset {offset}: another table failed.")
                raise MigrationAborted(table.name)

            try:
                rows = fetch_page(source, table.name, columns, offset, batch_size)
            except Exception as e:
                raise MigrationError(table.name, "fetch", e) from e

            if rows:
                try:
                    execute_insert(target, table.name, columns, rows)
                except Exception as e:
                    raise MigrationError(table.name, "insert", e) from e
                tracker.add(table.name, len(rows))
                logging.debug(f"[{table.name}] Copied rows {offset + 1} to {offset + len(rows)}")

            if len(rows) < batch_size:
                break
            offset += batch_size

    migrated, total = tracker.snapshot(table.name)
    logging.info(f"+++ Finished table {table.name}: {migrated}/{total} rows copied +++")
    return migrated
