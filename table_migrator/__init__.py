"""Dependency-aware, batched table replication into PostgreSQL."""

__version__ = "0.1.0"
