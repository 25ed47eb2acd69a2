# src/pluto_todo/storage/schema.py

"""
Schema creation and default-category seeding.

Safe to run on every start:
- tables and indices use IF NOT EXISTS
- duplicate categories (same name) collapse onto the MIN(id) survivor
- default categories are inserted only when their name is missing
"""

from __future__ import annotations

import logging
import sqlite3

from ..models.dates import format_timestamp, utc_now
from ..models.task import new_id

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("Personal", "#3B82F6", "User"),
    ("Work", "#EF4444", "Briefcase"),
    ("Shopping", "#10B981", "ShoppingCart"),
    ("Health", "#F59E0B", "Heart"),
)

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        color TEXT NOT NULL,
        icon TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT,
        completed INTEGER NOT NULL DEFAULT 0,
        priority TEXT NOT NULL DEFAULT 'Medium',
        due_date TEXT,
        category_id TEXT,
        parent_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (category_id) REFERENCES categories(id),
        FOREIGN KEY (parent_id) REFERENCES tasks(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS task_tags (
        task_id TEXT NOT NULL,
        tag TEXT NOT NULL,
        PRIMARY KEY (task_id, tag),
        FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
    )
    """,
)

_INDICES = (
    "CREATE INDEX IF NOT EXISTS idx_tasks_completed ON tasks(completed)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_category ON tasks(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks(parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date)",
    "CREATE INDEX IF NOT EXISTS idx_task_tags_tag ON task_tags(tag)",
)

_DUPLICATE_IDS = "SELECT id FROM categories WHERE id NOT IN (SELECT MIN(id) FROM categories GROUP BY name)"


def run_migrations(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()

    for ddl in _TABLES:
        cur.execute(ddl)
    for ddl in _INDICES:
        cur.execute(ddl)

    _collapse_duplicate_categories(cur)
    _seed_default_categories(cur)


def _collapse_duplicate_categories(cur: sqlite3.Cursor) -> None:
    # Re-point tasks first, otherwise the FK on tasks.category_id blocks the delete.
    cur.execute(
        f"""
        UPDATE tasks
        SET category_id = (
            SELECT MIN(survivor.id)
            FROM categories AS survivor
            WHERE survivor.name = (SELECT dup.name FROM categories AS dup WHERE dup.id = tasks.category_id)
        )
        WHERE category_id IN ({_DUPLICATE_IDS})
        """
    )
    cur.execute(f"DELETE FROM categories WHERE id IN ({_DUPLICATE_IDS})")
    if cur.rowcount > 0:
        logger.info("Schema migration: removed %d duplicate categories", cur.rowcount)


def _seed_default_categories(cur: sqlite3.Cursor) -> None:
    now = format_timestamp(utc_now())
    for name, color, icon in DEFAULT_CATEGORIES:
        cur.execute("SELECT COUNT(*) FROM categories WHERE name = ?", (name,))
        (exists,) = cur.fetchone()
        if exists:
            continue
        cur.execute(
            "INSERT INTO categories (id, name, color, icon, created_at) VALUES (?, ?, ?, ?, ?)",
            (new_id(), name, color, icon, now),
        )
        logger.debug("Seeded default category %s", name)
