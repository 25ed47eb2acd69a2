# src/pluto_todo/storage/task_store.py

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable

from ..models.dates import format_optional, format_timestamp, parse_stored
from ..models.task import Priority, Task, TaskFilter
from .query import TASK_COLUMNS, TaskQuery

logger = logging.getLogger(__name__)

# Stay well below SQLite's bound-variable limit when loading tags in bulk.
_TAG_BATCH = 500


class TaskStore:
    """
    Task persistence over a connection handed out by Database.session().

    The store never locks or commits on its own: the caller owns the lock for
    the whole logical operation and the connection runs in autocommit mode.
    Errors are raised as sqlite3.Error and wrapped by the command layer.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ---- low-level helpers ----

    @staticmethod
    def _row_to_task(row: sqlite3.Row, tags: list[str]) -> Task:
        return Task(
            id=str(row["id"]),
            title=str(row["title"]),
            description=row["description"],
            completed=bool(row["completed"]),
            priority=Priority.from_string(row["priority"]),
            due_date=parse_stored(row["due_date"]),
            category_id=row["category_id"],
            tags=tags,
            parent_id=row["parent_id"],
            created_at=parse_stored(row["created_at"]),
            updated_at=parse_stored(row["updated_at"]),
        )

    def _load_tags(self, task_ids: list[str]) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {tid: [] for tid in task_ids}
        for start in range(0, len(task_ids), _TAG_BATCH):
            chunk = task_ids[start : start + _TAG_BATCH]
            placeholders = ",".join("?" for _ in chunk)
            cur = self._conn.execute(
                f"SELECT task_id, tag FROM task_tags WHERE task_id IN ({placeholders}) ORDER BY tag",
                chunk,
            )
            for row in cur.fetchall():
                out[row["task_id"]].append(row["tag"])
        return out

    def _hydrate(self, rows: Iterable[sqlite3.Row]) -> list[Task]:
        rows = list(rows)
        tags = self._load_tags([str(r["id"]) for r in rows])
        return [self._row_to_task(r, tags[str(r["id"])]) for r in rows]

    def _write_tags(self, task: Task) -> None:
        self._conn.execute("DELETE FROM task_tags WHERE task_id = ?", (task.id,))
        self._conn.executemany(
            "INSERT INTO task_tags (task_id, tag) VALUES (?, ?)",
            [(task.id, tag) for tag in task.tags],
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        (n,) = self._conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
        return int(n)

    def create(self, task: Task) -> None:
        self._conn.execute(
            """
            INSERT INTO tasks (
                id, title, description, completed, priority, due_date,
                category_id, parent_id, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.title,
                task.description,
                int(task.completed),
                task.priority.value,
                format_optional(task.due_date),
                task.category_id,
                task.parent_id,
                format_timestamp(task.created_at),
                format_timestamp(task.updated_at),
            ),
        )
        self._write_tags(task)
        logger.debug("Task created id=%s parent=%s", task.id, task.parent_id)

    def get_by_id(self, task_id: str) -> Task | None:
        row = self._conn.execute(
            f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,)
        ).fetchone()
        if row is None:
            return None
        return self._hydrate([row])[0]

    def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        return self.run_query(TaskQuery.from_filter(task_filter))

    def run_query(self, query: TaskQuery) -> list[Task]:
        cur = self._conn.execute(query.to_sql(), query.params)
        return self._hydrate(cur.fetchall())

    def list_children(self, parent_id: str) -> list[Task]:
        return self.list_tasks(TaskFilter(parent_id=parent_id))

    def list_root_tasks(self) -> list[Task]:
        return self.list_tasks(TaskFilter(root_only=True))

    def has_children(self, task_id: str) -> bool:
        row = self._conn.execute(
            "SELECT EXISTS(SELECT 1 FROM tasks WHERE parent_id = ?)", (task_id,)
        ).fetchone()
        return bool(row[0])

    def update(self, task: Task) -> None:
        self._conn.execute(
            """
            UPDATE tasks
            SET title = ?,
                description = ?,
                completed = ?,
                priority = ?,
                due_date = ?,
                category_id = ?,
                parent_id = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                task.title,
                task.description,
                int(task.completed),
                task.priority.value,
                format_optional(task.due_date),
                task.category_id,
                task.parent_id,
                format_timestamp(task.updated_at),
                task.id,
            ),
        )
        self._write_tags(task)
        logger.debug("Task updated id=%s completed=%s", task.id, task.completed)

    def delete(self, task_id: str) -> None:
        self._conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        logger.debug("Task deleted id=%s", task_id)
