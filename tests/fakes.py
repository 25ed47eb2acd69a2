# tests/fakes.py

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

from pluto_todo.models.dates import utc_now
from pluto_todo.models.task import CreateTaskRequest, Task


class FakeTaskRepo:
    """
    In-memory TaskRepo used for hierarchy engine unit tests.

    This avoids SQLite and lets tests build shapes the database would refuse,
    such as a parent cycle left behind by an older version. Stored tasks are
    copied in and out so callers cannot mutate them behind the repo's back.
    """

    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}
        self.deleted: list[str] = []
        self._clock = utc_now()

    def add(self, title: str, parent: Task | None = None, *, completed: bool = False) -> Task:
        self._clock += timedelta(seconds=1)
        task = Task.new(
            CreateTaskRequest(title=title, parent_id=parent.id if parent else None),
            now=self._clock,
        )
        task.completed = completed
        self.create(task)
        return task

    def get_by_id(self, task_id: str) -> Task | None:
        t = self.tasks.get(task_id)
        return replace(t) if t else None

    def list_children(self, parent_id: str) -> list[Task]:
        out = [replace(t) for t in self.tasks.values() if t.parent_id == parent_id]
        out.sort(key=lambda t: t.created_at)
        return out

    def list_root_tasks(self) -> list[Task]:
        out = [replace(t) for t in self.tasks.values() if t.parent_id is None]
        out.sort(key=lambda t: t.created_at, reverse=True)
        return out

    def has_children(self, task_id: str) -> bool:
        return any(t.parent_id == task_id for t in self.tasks.values())

    def create(self, task: Task) -> None:
        self.tasks[task.id] = replace(task)

    def update(self, task: Task) -> None:
        self.tasks[task.id] = replace(task)

    def delete(self, task_id: str) -> None:
        if self.tasks.pop(task_id, None) is not None:
            self.deleted.append(task_id)
