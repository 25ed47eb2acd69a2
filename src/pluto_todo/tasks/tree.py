# src/pluto_todo/tasks/tree.py

"""
Pure helpers over an already-loaded flat list of tasks.

Used to shape list results for the UI (nesting, depth, sorting) without
going back to the database.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from ..models.task import Task, TaskNode


class SortField(StrEnum):
    TITLE = "title"
    DUE_DATE = "due_date"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    PRIORITY = "priority"
    COMPLETED = "completed"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


def build_task_tree(tasks: Iterable[Task]) -> list[TaskNode]:
    """
    Nest a flat list into a forest. Tasks whose parent is not in the list
    become roots, so any filtered subset still renders. Input order is kept
    among siblings.
    """
    tasks = list(tasks)
    by_id = {t.id: t for t in tasks}
    children: dict[str, list[Task]] = {}
    roots: list[Task] = []

    for t in tasks:
        if t.parent_id is None or t.parent_id not in by_id:
            roots.append(t)
        else:
            children.setdefault(t.parent_id, []).append(t)

    def build(task: Task, depth: int, path: frozenset[str]) -> TaskNode:
        node = TaskNode(task=task, depth=depth)
        for child in children.get(task.id, []):
            if child.id in path:
                continue
            node.children.append(build(child, depth + 1, path | {child.id}))
        return node

    return [build(t, 0, frozenset({t.id})) for t in roots]


def flatten_tree(nodes: Iterable[TaskNode]) -> list[Task]:
    """Pre-order walk: each task followed by its children."""
    out: list[Task] = []
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        out.append(node.task)
        stack.extend(reversed(node.children))
    return out


def _ancestors(task: Task, by_id: dict[str, Task]) -> Iterable[Task]:
    seen = {task.id}
    current = task
    while current.parent_id is not None:
        parent = by_id.get(current.parent_id)
        if parent is None or parent.id in seen:
            return
        seen.add(parent.id)
        yield parent
        current = parent


def task_depth(task: Task, tasks: Iterable[Task]) -> int:
    """0 for a root; a parent missing from ``tasks`` ends the chain."""
    by_id = {t.id: t for t in tasks}
    return sum(1 for _ in _ancestors(task, by_id))


def is_ancestor_of(ancestor_id: str, descendant: Task, tasks: Iterable[Task]) -> bool:
    by_id = {t.id: t for t in tasks}
    return any(a.id == ancestor_id for a in _ancestors(descendant, by_id))


def root_task_of(task: Task, tasks: Iterable[Task]) -> Task:
    by_id = {t.id: t for t in tasks}
    root = task
    for a in _ancestors(task, by_id):
        root = a
    return root


def _sort_key(field: SortField, task: Task) -> Any:
    if field is SortField.TITLE:
        return task.title.casefold()
    if field is SortField.DUE_DATE:
        return task.due_date
    if field is SortField.CREATED_AT:
        return task.created_at
    if field is SortField.UPDATED_AT:
        return task.updated_at
    if field is SortField.PRIORITY:
        return task.priority.rank
    return task.completed


def sort_tasks(
    tasks: Iterable[Task],
    field: SortField | str = SortField.CREATED_AT,
    order: SortOrder | str = SortOrder.DESC,
) -> list[Task]:
    """
    Stable sort by one field. Tasks without a due date go last when sorting
    by due date, whichever the order.
    """
    field = SortField(field)
    reverse = SortOrder(order) is SortOrder.DESC
    tasks = list(tasks)

    if field is SortField.DUE_DATE:
        dated = [t for t in tasks if t.due_date is not None]
        undated = [t for t in tasks if t.due_date is None]
        return sorted(dated, key=lambda t: _sort_key(field, t), reverse=reverse) + undated

    return sorted(tasks, key=lambda t: _sort_key(field, t), reverse=reverse)
