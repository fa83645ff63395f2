"""Per-table progress counters and the periodic reporter that logs them."""
import logging
import threading
import time
from datetime import timedelta


class ProgressCounter:
    """Rows migrated so far out of a fixed total. Each counter has its own lock."""

    def __init__(self, total):
        self.total = total
        self._migrated = 0
        self._lock = threading.Lock()

    def add(self, rows):
        with self._lock:
            self._migrated += rows

    @property
    def migrated(self):
        with self._lock:
            return self._migrated

    def snapshot(self):
        return self.migrated, self.total


class ProgressTracker:
    """Holds one counter per table. Counters are registered before any task starts."""

    def __init__(self):
        self._counters = {}

    def register(self, table_name, total):
        counter = ProgressCounter(total)
        self._counters[table_name] = counter
        return counter

    def add(self, table_name, rows):
        self._counters[table_name].add(rows)

    def snapshot(self, table_name):
        return self._counters[table_name].snapshot()


def percentage(migrated, total):
    if total <= 0:
        return 0.0
    return min(max(migrated / total * 100, 0.0), 100.0)


def estimate_remaining(elapsed, migrated, total):
    """Seconds left at the throughput seen so far, or None before the first batch."""
    if migrated <= 0:
        return None
    return max(elapsed / migrated * (total - migrated), 0.0)


def format_duration(seconds):
    return str(timedelta(seconds=round(seconds)))


def format_progress(table_name, migrated, total, elapsed):
    line = (f"table {table_name}: {migrated}/{total} rows migrated "
            f"({percentage(migrated, total):.2f}%)")
    remaining = estimate_remaining(elapsed, migrated, total)
    if remaining is not None:
        line += f", Estimated time left: {format_duration(remaining)}"
    return line


def report_progress(tracker, table_name, started_at):
    migrated, total = tracker.snapshot(table_name)
    logging.info(format_progress(table_name, migrated, total, time.monotonic() - started_at))


class ProgressReporter:
    """
    Logs a table's progress every `interval` seconds on a background thread.

    Use it as a context manager around the table's copy loop: on exit, however
    the loop ended, the thread is stopped and joined and one last report is
    written from the calling thread.
    """

    def __init__(self, tracker, table_name, started_at=None, interval=1.0):
        self.tracker = tracker
        self.table_name = table_name
        self.started_at = time.monotonic() if started_at is None else started_at
        self.interval = interval
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name=f"Progress-{table_name}", daemon=True
        )

    def _run(self):
        while not self._stopped.wait(self.interval):
            report_progress(self.tracker, self.table_name, self.started_at)

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self._stopped.set()
        if self._thread.is_alive():
            self._thread.join()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        report_progress(self.tracker, self.table_name, self.started_at)
        return False
