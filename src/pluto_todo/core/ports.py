# src/pluto_todo/core/ports.py

"""
Ports (interfaces) used by the hierarchy engine.

The engine depends on a Protocol instead of the SQLite store, which keeps it
testable against an in-memory repo.
"""

from __future__ import annotations

from typing import Protocol

from ..models.task import Task


class TaskRepo(Protocol):
    def get_by_id(self, task_id: str) -> Task | None: ...

    # Direct children, oldest first.
    def list_children(self, parent_id: str) -> list[Task]: ...

    def list_root_tasks(self) -> list[Task]: ...
    def has_children(self, task_id: str) -> bool: ...
    def create(self, task: Task) -> None: ...
    def update(self, task: Task) -> None: ...
    def delete(self, task_id: str) -> None: ...
