# src/pluto_todo/tasks/hierarchy.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.ports import TaskRepo
from ..errors import HierarchyCycleError, TaskNotFound
from ..models.dates import utc_now
from ..models.task import Task, TaskProgress

logger = logging.getLogger(__name__)


class HierarchyEngine:
    """
    Parent/child operations over a task repository.

    Tasks are addressed by id and children are found by repeated lookup, so
    no in-memory reference cycles are ever built. Cycles are rejected when a
    parent is assigned (ensure_valid_parent); traversal also tracks visited
    ids so a cycle already on disk cannot make it loop.
    """

    def __init__(self, repo: TaskRepo) -> None:
        self._repo = repo

    # ---- traversal ----

    def get_task_hierarchy(self, root_id: str | None = None) -> list[Task]:
        """
        All descendants of ``root_id``, or every root task plus all of their
        descendants when ``root_id`` is None.

        Uses a LIFO work list: the result is complete but its order is
        neither breadth-first nor depth-first. A parent always appears
        before its own children.
        """
        if root_id is None:
            start = self._repo.list_root_tasks()
            seen: set[str] = set()
        else:
            start = self._repo.list_children(root_id)
            seen = {root_id}

        result: list[Task] = []
        stack: list[Task] = []
        for task in start:
            seen.add(task.id)
            result.append(task)
            stack.append(task)

        while stack:
            current = stack.pop()
            for child in self._repo.list_children(current.id):
                if child.id in seen:
                    logger.warning(
                        "Cycle in task hierarchy: %s is reachable twice (via %s)", child.id, current.id
                    )
                    continue
                seen.add(child.id)
                result.append(child)
                stack.append(child)

        return result

    def get_task_with_subtasks(self, task_id: str) -> list[Task]:
        """The task itself followed by its whole hierarchy."""
        task = self._require(task_id)
        return [task, *self.get_task_hierarchy(task_id)]

    def get_incomplete_subtasks(self, parent_id: str) -> list[Task]:
        return [t for t in self.get_task_hierarchy(parent_id) if not t.completed]

    def has_subtasks(self, task_id: str) -> bool:
        return self._repo.has_children(task_id)

    def calculate_task_progress(self, task_id: str) -> TaskProgress:
        descendants = self.get_task_hierarchy(task_id)
        if not descendants:
            return TaskProgress()

        total = len(descendants)
        completed = sum(1 for t in descendants if t.completed)
        return TaskProgress(
            total_subtasks=total,
            completed_subtasks=completed,
            progress_percentage=completed / total * 100.0,
            has_subtasks=True,
        )

    # ---- mutation ----

    def ensure_valid_parent(self, task_id: str | None, parent_id: str | None) -> None:
        """
        Check a parent assignment before it is written.

        Raises TaskNotFound if the parent does not exist and
        HierarchyCycleError if the parent is the task itself or one of its
        descendants. ``task_id`` is None for tasks not yet stored.
        """
        if parent_id is None:
            return
        if self._repo.get_by_id(parent_id) is None:
            raise TaskNotFound(parent_id)
        if task_id is None:
            return
        if parent_id == task_id or any(t.id == parent_id for t in self.get_task_hierarchy(task_id)):
            raise HierarchyCycleError(task_id, parent_id)

    def delete_task_and_subtasks(self, task_id: str) -> int:
        """
        Delete the task and its whole subtree. Returns the number of tasks
        removed; an unknown id removes nothing.
        """
        descendants = self.get_task_hierarchy(task_id)

        # Discovery order puts parents before children, so reversing it
        # deletes leaves first and keeps parent_id references valid throughout.
        for task in reversed(descendants):
            self._repo.delete(task.id)

        existed = self._repo.get_by_id(task_id) is not None
        self._repo.delete(task_id)

        removed = len(descendants) + int(existed)
        logger.info("Deleted task %s with subtasks (removed=%d)", task_id, removed)
        return removed

    def delete_task_and_promote_subtasks(self, task_id: str) -> list[Task]:
        """
        Delete the task after moving its direct children up to its own
        parent (or to the root). Grandchildren keep their parent. Returns the
        promoted children.
        """
        task = self._require(task_id)
        children = self._repo.list_children(task_id)

        now = utc_now()
        for child in children:
            child.parent_id = task.parent_id
            child.touch(now)
            self._repo.update(child)

        self._repo.delete(task_id)
        logger.info(
            "Deleted task %s, promoted %d subtasks to parent=%s", task_id, len(children), task.parent_id
        )
        return children

    def bulk_mark_subtasks_completed(self, parent_id: str) -> list[Task]:
        """Complete every open descendant; returns only the tasks that changed."""
        changed: list[Task] = []
        for task in self.get_task_hierarchy(parent_id):
            if task.completed:
                continue
            task.completed = True
            task.touch()
            self._repo.update(task)
            changed.append(task)

        logger.info("Marked %d subtasks of %s completed", len(changed), parent_id)
        return changed

    # ---- bulk variants: in order, first failure aborts ----

    def bulk_has_subtasks(self, task_ids: Iterable[str]) -> list[str]:
        return [tid for tid in task_ids if self.has_subtasks(tid)]

    def bulk_delete_tasks_with_subtasks(self, task_ids: Iterable[str]) -> int:
        return sum(self.delete_task_and_subtasks(tid) for tid in task_ids)

    def bulk_delete_tasks_and_promote_subtasks(self, task_ids: Iterable[str]) -> list[Task]:
        promoted: list[Task] = []
        for tid in task_ids:
            promoted.extend(self.delete_task_and_promote_subtasks(tid))
        return promoted

    def _require(self, task_id: str) -> Task:
        task = self._repo.get_by_id(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task
