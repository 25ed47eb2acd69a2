# tests/test_bootstrap.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from pluto_todo.cli.bootstrap import create_initial_state, shutdown
from pluto_todo.config import Settings
from pluto_todo.logging_setup import _ConsoleNoiseFilter, level_from_name, setup_logging


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PLUTO_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PLUTO_CONSOLE_ENABLED", "no")
    monkeypatch.setenv("PLUTO_LOCK_TIMEOUT", "2.5")
    monkeypatch.delenv("PLUTO_DB_PATH", raising=False)
    monkeypatch.delenv("PLUTO_LOG_DIR", raising=False)

    s = Settings.from_env()

    assert s.console_enabled is False
    assert s.db_path == tmp_path / "pluto_todo.db"
    assert s.log_dir == tmp_path
    assert s.lock_timeout_seconds == 2.5


def test_settings_ignore_bad_lock_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLUTO_LOCK_TIMEOUT", "soon")
    assert Settings.from_env().lock_timeout_seconds is None
    monkeypatch.setenv("PLUTO_LOCK_TIMEOUT", "-1")
    assert Settings.from_env().lock_timeout_seconds is None


def test_create_initial_state_opens_seeded_database(settings, tmp_path: Path) -> None:
    settings.data_dir = tmp_path / "nested" / "data"
    settings.db_path = settings.data_dir / "todo.db"

    state = create_initial_state(settings=settings)
    try:
        assert settings.db_path.exists()
        with state.db.session() as conn:
            (count,) = conn.execute("SELECT COUNT(*) FROM categories").fetchone()
        assert count == 4
    finally:
        shutdown(state)


def test_setup_logging_writes_log_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers)
    try:
        log_file = setup_logging(log_dir=tmp_path, console_level="warning")
        logging.getLogger("pluto_todo.test").debug("hello log file")
        for h in root.handlers:
            h.flush()
        assert log_file == tmp_path / "pluto.log"
        assert "hello log file" in log_file.read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved:
            root.addHandler(h)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("15", 15), ("loud", logging.INFO), (None, logging.INFO)],
)
def test_level_from_name(raw, expected) -> None:
    assert level_from_name(raw) == expected


def test_console_filter_mutes_storage_debug_only() -> None:
    noise = _ConsoleNoiseFilter()

    def record(name: str, level: int) -> logging.LogRecord:
        return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

    assert not noise.filter(record("pluto_todo.storage.task_store", logging.DEBUG))
    assert noise.filter(record("pluto_todo.storage.database", logging.INFO))
    assert noise.filter(record("pluto_todo.tasks.hierarchy", logging.DEBUG))
    assert not noise.filter(record("py.warnings", logging.WARNING))
    assert noise.filter(record("asyncio", logging.ERROR))
