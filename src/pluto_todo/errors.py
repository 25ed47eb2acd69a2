# src/pluto_todo/errors.py

"""
Error taxonomy shared by stores, the hierarchy engine and the command layer.

Every error carries a human-readable message; the command layer returns
``str(exc)`` to the caller and never raises across the boundary.
"""

from __future__ import annotations


class TodoError(Exception):
    """Base class for all expected failures."""


class NotFoundError(TodoError):
    """An id did not resolve to a stored entity."""


class TaskNotFound(NotFoundError):
    def __init__(self, task_id: str | None = None) -> None:
        self.task_id = task_id
        super().__init__("Task not found" if task_id is None else f"Task not found: {task_id}")


class CategoryNotFound(NotFoundError):
    def __init__(self, category_id: str | None = None) -> None:
        self.category_id = category_id
        super().__init__(
            "Category not found" if category_id is None else f"Category not found: {category_id}"
        )


class LockContention(TodoError):
    """The database lock could not be acquired."""


class PersistenceError(TodoError):
    """A storage operation failed; the message names the failed action."""


class ValidationError(TodoError):
    """Malformed input that cannot be coerced."""


class HierarchyCycleError(ValidationError):
    """A parent assignment would make a task its own ancestor."""

    def __init__(self, task_id: str, parent_id: str) -> None:
        self.task_id = task_id
        self.parent_id = parent_id
        super().__init__(
            f"Cannot move task {task_id} under {parent_id}: it would become its own ancestor"
        )
