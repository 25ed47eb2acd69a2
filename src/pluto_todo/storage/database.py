# src/pluto_todo/storage/database.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
from collections.abc import Iterator
from pathlib import Path

from ..errors import LockContention, PersistenceError
from .schema import run_migrations

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


class Database:
    """
    Single shared SQLite handle guarded by one mutex.

    Concurrency model:
    - one connection for the whole process (check_same_thread=False)
    - session() holds the lock for an entire logical operation, so multi-step
      hierarchy operations never interleave with other commands
    - autocommit: there is no transaction around a session, a crash in the
      middle of one can leave partial writes
    """

    def __init__(
        self,
        db_path: str | Path = IN_MEMORY,
        *,
        lock_timeout: float | None = None,
    ) -> None:
        self._db_path = str(db_path)
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()

        if self._db_path != IN_MEMORY:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = self._connect()
            with self.session() as conn:
                run_migrations(conn)
                total = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to initialize database: {e}") from e

        logger.info("Database ready db=%s tasks=%s", self._db_path, total)

    @classmethod
    def in_memory(cls) -> Database:
        return cls(IN_MEMORY)

    @property
    def path(self) -> str:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path,
            timeout=30.0,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        # LIKE folds ASCII only; search compares casefold() on both sides.
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        if self._db_path != IN_MEMORY:
            with contextlib.suppress(sqlite3.Error):
                conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        """Hold the database lock for one logical operation."""
        timeout = -1 if self._lock_timeout is None else self._lock_timeout
        if not self._lock.acquire(timeout=timeout):
            raise LockContention(
                f"Database lock error: not acquired within {self._lock_timeout}s"
            )
        try:
            yield self._conn
        finally:
            self._lock.release()

    def run_migrations(self) -> None:
        """Re-run schema creation and seeding (idempotent)."""
        with self.session() as conn:
            try:
                run_migrations(conn)
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to run migrations: {e}") from e

    def close(self) -> None:
        with self.session() as conn:
            conn.close()
        logger.debug("Database closed db=%s", self._db_path)
