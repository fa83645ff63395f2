"""
Dependency-ordered execution of table migrations.

Tables are grouped into waves: a wave holds every table whose in-set
dependencies all belong to earlier waves. A wave's tables run concurrently and
the next wave is only dispatched once the whole current wave has finished.
"""
import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed

from tqdm import tqdm

from .errors import CircularDependencyError, ConfigError, MigrationAborted, MigrationError


def build_dependency_graph(tables):
    """
    Returns (in_degree, dependents) keyed by table name.

    Self references and dependencies on tables outside the set are skipped, so
    they never hold a table back.
    """
    names = [t.name for t in tables]
    duplicates = sorted(n for n, count in Counter(names).items() if count > 1)
    if duplicates:
        raise ConfigError(f"Duplicate table names: {', '.join(duplicates)}")

    known = set(names)
    in_degree = {name: 0 for name in names}
    dependents = {name: [] for name in names}
    for table in tables:
        for dep in set(table.dependencies):
            if dep == table.name or dep not in known:
                continue
            in_degree[table.name] += 1
            dependents[dep].append(table.name)
    return in_degree, dependents


def plan_waves(tables):
    """Splits the tables into waves, raising CircularDependencyError if some can never run."""
    in_degree, dependents = build_dependency_graph(tables)
    by_name = {t.name: t for t in tables}

    waves = []
    ready = [t.name for t in tables if in_degree[t.name] == 0]
    while ready:
        waves.append([by_name[name] for name in ready])
        next_ready = []
        for name in ready:
            for dependent in dependents[name]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    next_ready.append(dependent)
        ready = next_ready

    stuck = [name for name, degree in in_degree.items() if degree > 0]
    if stuck:
        raise CircularDependencyError(stuck)
    return waves


def run_waves(waves, task, max_workers=None, show_progress=True):
    """
    Runs `task(table, abort)` for every table, one wave at a time.

    The first failure sets `abort` so that running siblings stop at their next
    page, no later wave is started, and the failure is re-raised here.
    Returns the names of the tables that were run.
    """
    total = sum(len(wave) for wave in waves)
    processed = set()
    abort = threading.Event()
    first_error = None

    with tqdm(total=total, desc="Overall Progress", unit=" tables", disable=not show_progress) as pbar:
        for number, wave in enumerate(waves, start=1):
            logging.info(f"Wave {number}/{len(waves)}: {', '.join(t.name for t in wave)}")
            workers = min(len(wave), max_workers or len(wave))

            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"Wave{number}") as executor:
                futures = {}
                for table in wave:
                    futures[executor.submit(task, table, abort)] = table
                    processed.add(table.name)

                for future in as_completed(futures):
                    table = futures[future]
                    try:
                        future.result()
                        pbar.update(1)
                    except MigrationAborted as e:
                        logging.warning(str(e))
                    except MigrationError as e:
                        logging.error(str(e))
                        first_error = first_error or e
                        abort.set()
                    except Exception as e:
                        logging.error(f"Unexpected error migrating table {table.name}: {e}", exc_info=True)
                        first_error = first_error or MigrationError(table.name, "task", e)
                        abort.set()

            if first_error is not None:
                logging.critical(f"Aborting migration after wave {number}: {first_error}")
                raise first_error

    return processed
