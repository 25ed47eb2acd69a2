# src/pluto_todo/storage/query.py

from __future__ import annotations

from typing import Any

from ..models.dates import format_timestamp
from ..models.task import TaskFilter

TASK_COLUMNS = (
    "id, title, description, completed, priority, due_date, "
    "category_id, parent_id, created_at, updated_at"
)


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class TaskQuery:
    """
    Accumulates named predicates with their bound values and renders one
    parameterized SELECT. User input only ever travels as a bound parameter.
    """

    def __init__(self) -> None:
        self._conditions: list[str] = []
        self._params: list[Any] = []
        self._oldest_first = False

    def where(self, predicate: str, *params: Any) -> TaskQuery:
        self._conditions.append(predicate)
        self._params.extend(params)
        return self

    def oldest_first(self, flag: bool = True) -> TaskQuery:
        self._oldest_first = flag
        return self

    @classmethod
    def from_filter(cls, f: TaskFilter | None) -> TaskQuery:
        q = cls()
        if f is None:
            return q

        if f.completed is not None:
            q.where("completed = ?", int(f.completed))
        if f.priority is not None:
            q.where("priority = ?", f.priority.value)

        if f.no_category:
            q.where("category_id IS NULL")
        elif f.category_id is not None:
            q.where("category_id = ?", f.category_id)

        if f.parent_id is not None:
            # Direct children read oldest first.
            q.where("parent_id = ?", f.parent_id).oldest_first()
        elif f.root_only:
            q.where("parent_id IS NULL")

        if f.search_query:
            pattern = _like_pattern(f.search_query.casefold())
            q.where(
                "(casefold(title) LIKE ? ESCAPE '\\' OR casefold(description) LIKE ? ESCAPE '\\')",
                pattern,
                pattern,
            )

        due_before = f.parse_due_before()
        if due_before is not None:
            q.where("due_date <= ?", format_timestamp(due_before))
        due_after = f.parse_due_after()
        if due_after is not None:
            q.where("due_date >= ?", format_timestamp(due_after))

        return q

    @property
    def params(self) -> list[Any]:
        return list(self._params)

    def to_sql(self) -> str:
        sql = f"SELECT {TASK_COLUMNS} FROM tasks"
        if self._conditions:
            sql += " WHERE " + " AND ".join(self._conditions)
        direction = "ASC" if self._oldest_first else "DESC"
        # rowid breaks ties between tasks created within the same microsecond.
        sql += f" ORDER BY created_at {direction}, rowid {direction}"
        return sql
