"""Database layer for Campus Connect."""

from campus.db.connection import Database
from campus.db.migrations import run_migrations

__all__ = ["Database", "run_migrations"]
