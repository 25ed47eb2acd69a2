# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from pluto_todo.core.state import AppState
from pluto_todo.storage.database import Database
from pluto_todo.storage.task_store import TaskStore
from pluto_todo.tasks.hierarchy import HierarchyEngine


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="pluto-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        db_path=tmp_path / "pluto_todo.db",
        log_dir=tmp_path,
        lock_timeout_seconds=None,
    )


@pytest.fixture()
def db(settings: SimpleNamespace) -> Iterator[Database]:
    """Real SQLite on disk: schema, FKs and ordering are part of what we test."""
    database = Database(settings.db_path)
    yield database
    database.close()


@pytest.fixture()
def state(settings: SimpleNamespace, db: Database) -> AppState:
    return AppState(settings=settings, db=db)


@pytest.fixture()
def store(db: Database) -> Iterator[TaskStore]:
    with db.session() as conn:
        yield TaskStore(conn)


@pytest.fixture()
def engine(store: TaskStore) -> HierarchyEngine:
    return HierarchyEngine(store)
