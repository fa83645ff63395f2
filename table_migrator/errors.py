"""Error types raised by the migration engine."""


class ConfigError(Exception):
    """Raised when the configuration or the tables file is unusable."""


class CircularDependencyError(Exception):
    """Raised when some tables can never become ready because they depend on each other."""

    def __init__(self, tables):
        self.tables = sorted(tables)
        super().__init__(f"Circular dependency between tables: {', '.join(self.tables)}")


class MigrationError(Exception):
    """
    A fatal failure while migrating.

    `table` is None for failures that are not tied to one table (e.g. opening
    a connection pool). `stage` names what was being done: connect, count,
    fetch, insert.
    """

    def __init__(self, table, stage, cause):
        self.table = table
        self.stage = stage
        self.cause = cause
        super().__init__(str(self))

    def __str__(self):
        where = f"table {self.table}" if self.table else "migration"
        return f"{where}: {self.stage} failed: {self.cause}"


class MigrationAborted(MigrationError):
    """Raised by a table task that stopped early because another table failed."""

    def __init__(self, table):
        super().__init__(table, "abort", "stopped because another table failed")
