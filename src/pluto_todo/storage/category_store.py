# src/pluto_todo/storage/category_store.py

from __future__ import annotations

import logging
import sqlite3

from ..models.category import Category
from ..models.dates import format_timestamp, parse_stored, utc_now

logger = logging.getLogger(__name__)


class CategoryStore:
    """Plain keyed CRUD for categories (no hierarchy)."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @staticmethod
    def _row_to_category(row: sqlite3.Row) -> Category:
        return Category(
            id=str(row["id"]),
            name=str(row["name"]),
            color=str(row["color"]),
            icon=row["icon"],
            created_at=parse_stored(row["created_at"]),
        )

    def create(self, category: Category) -> None:
        self._conn.execute(
            "INSERT INTO categories (id, name, color, icon, created_at) VALUES (?, ?, ?, ?, ?)",
            (
                category.id,
                category.name,
                category.color,
                category.icon,
                format_timestamp(category.created_at),
            ),
        )
        logger.debug("Category created id=%s name=%s", category.id, category.name)

    def get_by_id(self, category_id: str) -> Category | None:
        row = self._conn.execute(
            "SELECT id, name, color, icon, created_at FROM categories WHERE id = ?",
            (category_id,),
        ).fetchone()
        return self._row_to_category(row) if row else None

    def list_all(self) -> list[Category]:
        cur = self._conn.execute(
            "SELECT id, name, color, icon, created_at FROM categories ORDER BY name ASC"
        )
        return [self._row_to_category(r) for r in cur.fetchall()]

    def update(self, category: Category) -> None:
        self._conn.execute(
            "UPDATE categories SET name = ?, color = ?, icon = ? WHERE id = ?",
            (category.name, category.color, category.icon, category.id),
        )

    def delete(self, category_id: str) -> int:
        """
        Delete a category. Tasks that referenced it are kept and moved to
        "no category". Returns how many tasks were detached.
        """
        cur = self._conn.execute(
            "UPDATE tasks SET category_id = NULL, updated_at = ? WHERE category_id = ?",
            (format_timestamp(utc_now()), category_id),
        )
        detached = cur.rowcount
        self._conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
        logger.debug("Category deleted id=%s detached_tasks=%s", category_id, detached)
        return detached
