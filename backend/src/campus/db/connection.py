"""SQLite database connection management."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

# Concurrent writers wait this long for the write lock instead of failing
BUSY_TIMEOUT_MS = 5000


class Database:
    """One shared SQLite connection.

    The connection is opened with check_same_thread=False because FastAPI runs
    sync dependencies in a thread pool; callers that read then write must
    serialize themselves (see PostStore) and use immediate().
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, params)

    def executescript(self, sql: str) -> sqlite3.Cursor:
        """Run several statements. Commits any open transaction first."""
        return self._conn.executescript(sql)

    @contextmanager
    def immediate(self) -> Iterator["Database"]:
        """Run the block in a BEGIN IMMEDIATE transaction.

        The write lock is taken up front, so a read inside the block cannot be
        invalidated by another writer before the block's own writes. Commits
        on success and rolls back on any exception.
        """
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            raise
        self._conn.commit()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()
