# src/pluto_todo/cli/commands.py

"""
Command layer: the boundary the UI shell talks to.

Each command takes the AppState plus a dict of parameters and returns a
JSON-friendly payload. The registry turns every failure into a message
string, so nothing raises across the boundary. Every command holds the
database lock exactly once, for its whole duration.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from ..core.state import AppState
from ..errors import CategoryNotFound, PersistenceError, TaskNotFound, TodoError, ValidationError
from ..models.category import Category, CreateCategoryRequest, UpdateCategoryRequest
from ..models.task import CreateTaskRequest, Task, TaskFilter, UpdateTaskRequest
from ..storage.category_store import CategoryStore
from ..storage.task_store import TaskStore
from ..tasks.hierarchy import HierarchyEngine
from ..tasks.tree import SortField, SortOrder, build_task_tree, sort_tasks

CommandHandler = Callable[[AppState, dict[str, Any]], Any]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandResult:
    ok: bool
    data: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": self.data}
        return {"ok": False, "error": self.error}


class CommandRegistry:
    """Name -> handler registry used by connectors."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def names(self) -> list[str]:
        return list(self._help)

    def dispatch(
        self,
        state: AppState,
        name: str,
        params: dict[str, Any] | None = None,
    ) -> CommandResult:
        key = name.lower()
        handler = self._handlers.get(key)
        if handler is None:
            return CommandResult(
                ok=False, error=f"Unknown command: {name}. Use help to list available commands."
            )

        try:
            return CommandResult(ok=True, data=handler(state, params or {}))
        except TodoError as e:
            logger.info("Command %s failed: %s", key, e)
            return CommandResult(ok=False, error=str(e))
        except Exception:
            logger.exception("Command handler crashed: %s", key)
            return CommandResult(ok=False, error=f"Internal error while handling {key}.")

    async def dispatch_async(
        self,
        state: AppState,
        name: str,
        params: dict[str, Any] | None = None,
    ) -> CommandResult:
        """Run a command from an event loop; the locked call runs in a worker thread."""
        return await asyncio.to_thread(self.dispatch, state, name, params)

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like '/command {"json": "params"}'.
        Returns the JSON-encoded result or None if not a command.
        """
        if not line.startswith("/"):
            return None

        name, _, raw = line[1:].strip().partition(" ")
        if not name:
            return json.dumps({"ok": False, "error": "Empty command. Use /help to list available commands."})

        params: dict[str, Any] = {}
        if raw.strip():
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                return json.dumps({"ok": False, "error": f"Invalid JSON parameters: {e}"})
            if not isinstance(parsed, dict):
                return json.dumps({"ok": False, "error": "Parameters must be a JSON object."})
            params = parsed

        result = self.dispatch(state, name, params)
        return json.dumps(result.to_dict(), ensure_ascii=False, indent=2)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


@contextlib.contextmanager
def _session(state: AppState, action: str) -> Iterator[sqlite3.Connection]:
    """Hold the lock for the whole command; storage failures name the action."""
    with state.db.session() as conn:
        try:
            yield conn
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to {action}: {e}") from e


def _str_param(params: dict[str, Any], *names: str) -> str:
    for name in names:
        value = params.get(name)
        if isinstance(value, str) and value:
            return value
    raise ValidationError(f"{names[0]} is required")


def _opt_str_param(params: dict[str, Any], name: str) -> str | None:
    value = params.get(name)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value


def _ids_param(params: dict[str, Any]) -> list[str]:
    ids = params.get("ids")
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ValidationError("ids must be a list of strings")
    return ids


def _request_payload(params: dict[str, Any]) -> dict[str, Any]:
    request = params.get("request", params)
    if not isinstance(request, dict):
        raise ValidationError("request must be an object")
    return request


def _dicts(tasks: list[Task]) -> list[dict[str, Any]]:
    return [t.to_dict() for t in tasks]


def _require_task(tasks: TaskStore, task_id: str) -> Task:
    task = tasks.get_by_id(task_id)
    if task is None:
        raise TaskNotFound(task_id)
    return task


def _check_category(conn: sqlite3.Connection, category_id: str | None) -> None:
    if category_id is not None and CategoryStore(conn).get_by_id(category_id) is None:
        raise CategoryNotFound(category_id)


# ---- task commands ----


def cmd_create_task(state: AppState, params: dict[str, Any]) -> dict[str, Any]:
    task = Task.new(CreateTaskRequest.from_dict(_request_payload(params)))
    with _session(state, "create task") as conn:
        tasks = TaskStore(conn)
        HierarchyEngine(tasks).ensure_valid_parent(None, task.parent_id)
        _check_category(conn, task.category_id)
        tasks.create(task)
    return task.to_dict()


def cmd_get_tasks(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    task_filter = TaskFilter.from_dict(params.get("filter"))
    with _session(state, "get tasks") as conn:
        return _dicts(TaskStore(conn).list_tasks(task_filter))


def cmd_get_task_by_id(state: AppState, params: dict[str, Any]) -> dict[str, Any] | None:
    task_id = _str_param(params, "id")
    with _session(state, "get task") as conn:
        task = TaskStore(conn).get_by_id(task_id)
    return task.to_dict() if task else None


def cmd_update_task(state: AppState, params: dict[str, Any]) -> dict[str, Any]:
    task_id = _str_param(params, "id")
    request = UpdateTaskRequest.from_dict(_request_payload(params))
    with _session(state, "update task") as conn:
        tasks = TaskStore(conn)
        task = _require_task(tasks, task_id)
        task.update(request)
        if request.sets("parent_id"):
            HierarchyEngine(tasks).ensure_valid_parent(task.id, task.parent_id)
        if request.sets("category_id"):
            _check_category(conn, task.category_id)
        tasks.update(task)
    return task.to_dict()


def cmd_delete_task(state: AppState, params: dict[str, Any]) -> None:
    task_id = _str_param(params, "id")
    with _session(state, "delete task") as conn:
        tasks = TaskStore(conn)
        if tasks.has_children(task_id):
            raise ValidationError(
                "Task has subtasks; use delete_task_with_subtasks or delete_task_and_promote_subtasks"
            )
        tasks.delete(task_id)


def cmd_toggle_task_completion(state: AppState, params: dict[str, Any]) -> dict[str, Any]:
    task_id = _str_param(params, "id")
    with _session(state, "toggle task") as conn:
        tasks = TaskStore(conn)
        task = _require_task(tasks, task_id)
        task.completed = not task.completed
        task.touch()
        tasks.update(task)
    return task.to_dict()


def cmd_search_tasks(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    query = params.get("query")
    if not isinstance(query, str):
        raise ValidationError("query must be a string")
    with _session(state, "search tasks") as conn:
        return _dicts(TaskStore(conn).list_tasks(TaskFilter(search_query=query)))


def cmd_get_tasks_by_category(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    category_id = _str_param(params, "category_id", "categoryId")
    with _session(state, "get tasks by category") as conn:
        return _dicts(TaskStore(conn).list_tasks(TaskFilter(category_id=category_id)))


def cmd_get_subtasks(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    parent_id = _str_param(params, "parent_id", "parentId")
    with _session(state, "get subtasks") as conn:
        return _dicts(TaskStore(conn).list_children(parent_id))


def cmd_get_root_tasks(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    with _session(state, "get root tasks") as conn:
        return _dicts(TaskStore(conn).list_root_tasks())


def cmd_get_task_hierarchy(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    root_id = _opt_str_param(params, "root_id")
    with _session(state, "get task hierarchy") as conn:
        return _dicts(HierarchyEngine(TaskStore(conn)).get_task_hierarchy(root_id))


def cmd_get_task_with_subtasks(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    task_id = _str_param(params, "id")
    with _session(state, "get task with subtasks") as conn:
        return _dicts(HierarchyEngine(TaskStore(conn)).get_task_with_subtasks(task_id))


def cmd_get_task_tree(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    """Nested forest, siblings ordered by sort_field/sort_order."""
    root_id = _opt_str_param(params, "root_id")
    try:
        field = SortField(params.get("sort_field", SortField.CREATED_AT))
        order = SortOrder(params.get("sort_order", SortOrder.ASC))
    except ValueError as e:
        raise ValidationError(str(e)) from None

    with _session(state, "get task tree") as conn:
        engine = HierarchyEngine(TaskStore(conn))
        if root_id is None:
            flat = engine.get_task_hierarchy(None)
        else:
            flat = engine.get_task_with_subtasks(root_id)
    return [node.to_dict() for node in build_task_tree(sort_tasks(flat, field, order))]


def cmd_calculate_task_progress(state: AppState, params: dict[str, Any]) -> dict[str, Any]:
    task_id = _str_param(params, "id")
    with _session(state, "calculate progress") as conn:
        return HierarchyEngine(TaskStore(conn)).calculate_task_progress(task_id).to_dict()


def cmd_get_incomplete_subtasks(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    parent_id = _str_param(params, "parent_id", "parentId")
    with _session(state, "get incomplete subtasks") as conn:
        return _dicts(HierarchyEngine(TaskStore(conn)).get_incomplete_subtasks(parent_id))


def cmd_bulk_mark_subtasks_completed(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    parent_id = _str_param(params, "parent_id", "parentId")
    with _session(state, "mark subtasks completed") as conn:
        return _dicts(HierarchyEngine(TaskStore(conn)).bulk_mark_subtasks_completed(parent_id))


def cmd_delete_task_with_subtasks(state: AppState, params: dict[str, Any]) -> dict[str, int]:
    task_id = _str_param(params, "id")
    with _session(state, "delete task with subtasks") as conn:
        removed = HierarchyEngine(TaskStore(conn)).delete_task_and_subtasks(task_id)
    return {"removed": removed}


def cmd_delete_task_and_promote_subtasks(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    task_id = _str_param(params, "id")
    with _session(state, "delete task and promote subtasks") as conn:
        return _dicts(HierarchyEngine(TaskStore(conn)).delete_task_and_promote_subtasks(task_id))


def cmd_check_task_has_subtasks(state: AppState, params: dict[str, Any]) -> bool:
    task_id = _str_param(params, "id")
    with _session(state, "check subtasks") as conn:
        return HierarchyEngine(TaskStore(conn)).has_subtasks(task_id)


def cmd_bulk_check_tasks_have_subtasks(state: AppState, params: dict[str, Any]) -> list[str]:
    ids = _ids_param(params)
    with _session(state, "check subtasks") as conn:
        return HierarchyEngine(TaskStore(conn)).bulk_has_subtasks(ids)


def cmd_bulk_delete_tasks_with_subtasks(state: AppState, params: dict[str, Any]) -> dict[str, int]:
    ids = _ids_param(params)
    with _session(state, "delete task with subtasks") as conn:
        removed = HierarchyEngine(TaskStore(conn)).bulk_delete_tasks_with_subtasks(ids)
    return {"removed": removed}


def cmd_bulk_delete_tasks_and_promote_subtasks(
    state: AppState, params: dict[str, Any]
) -> list[dict[str, Any]]:
    ids = _ids_param(params)
    with _session(state, "delete task and promote subtasks") as conn:
        return _dicts(HierarchyEngine(TaskStore(conn)).bulk_delete_tasks_and_promote_subtasks(ids))


# ---- category commands ----


def cmd_create_category(state: AppState, params: dict[str, Any]) -> dict[str, Any]:
    category = Category.new(CreateCategoryRequest.from_dict(_request_payload(params)))
    with _session(state, "create category") as conn:
        CategoryStore(conn).create(category)
    return category.to_dict()


def cmd_get_categories(state: AppState, params: dict[str, Any]) -> list[dict[str, Any]]:
    with _session(state, "get categories") as conn:
        return [c.to_dict() for c in CategoryStore(conn).list_all()]


def cmd_get_category_by_id(state: AppState, params: dict[str, Any]) -> dict[str, Any] | None:
    category_id = _str_param(params, "id")
    with _session(state, "get category") as conn:
        category = CategoryStore(conn).get_by_id(category_id)
    return category.to_dict() if category else None


def cmd_update_category(state: AppState, params: dict[str, Any]) -> dict[str, Any]:
    category_id = _str_param(params, "id")
    request = UpdateCategoryRequest.from_dict(_request_payload(params))
    with _session(state, "update category") as conn:
        store = CategoryStore(conn)
        category = store.get_by_id(category_id)
        if category is None:
            raise CategoryNotFound(category_id)
        category.update(request)
        store.update(category)
    return category.to_dict()


def cmd_delete_category(state: AppState, params: dict[str, Any]) -> dict[str, int]:
    category_id = _str_param(params, "id")
    with _session(state, "delete category") as conn:
        detached = CategoryStore(conn).delete(category_id)
    return {"detached_tasks": detached}


def cmd_help(state: AppState, params: dict[str, Any]) -> str:
    return registry.build_help()


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])

registry.register("create_task", cmd_create_task, help_text='Create a task: {"title": ..., "parent_id": ...}.')
registry.register("get_tasks", cmd_get_tasks, help_text='List tasks: {"filter": {...}}.')
registry.register("get_task_by_id", cmd_get_task_by_id, help_text='Get one task: {"id": ...}.')
registry.register("update_task", cmd_update_task, help_text='Partial update: {"id": ..., "request": {...}}.')
registry.register("delete_task", cmd_delete_task, help_text="Delete a task that has no subtasks.")
registry.register("toggle_task_completion", cmd_toggle_task_completion, help_text="Flip completed.")
registry.register("search_tasks", cmd_search_tasks, help_text='Substring search: {"query": ...}.')
registry.register("get_tasks_by_category", cmd_get_tasks_by_category, help_text="Tasks in a category.")
registry.register("get_subtasks", cmd_get_subtasks, help_text="Direct subtasks, oldest first.")
registry.register("get_root_tasks", cmd_get_root_tasks, help_text="Tasks without a parent.")
registry.register("get_task_hierarchy", cmd_get_task_hierarchy, help_text="All descendants (or all tasks).")
registry.register("get_task_with_subtasks", cmd_get_task_with_subtasks, help_text="Task plus descendants.")
registry.register("get_task_tree", cmd_get_task_tree, help_text="Nested task forest.")
registry.register("calculate_task_progress", cmd_calculate_task_progress, help_text="Subtask progress.")
registry.register("get_incomplete_subtasks", cmd_get_incomplete_subtasks, help_text="Open descendants.")
registry.register(
    "bulk_mark_subtasks_completed",
    cmd_bulk_mark_subtasks_completed,
    help_text="Complete all descendants.",
)
registry.register(
    "delete_task_with_subtasks",
    cmd_delete_task_with_subtasks,
    help_text="Delete a task and its subtree.",
)
registry.register(
    "delete_task_and_promote_subtasks",
    cmd_delete_task_and_promote_subtasks,
    help_text="Delete a task, move its children up.",
)
registry.register("check_task_has_subtasks", cmd_check_task_has_subtasks, help_text="Has direct subtasks?")
registry.register(
    "bulk_check_tasks_have_subtasks",
    cmd_bulk_check_tasks_have_subtasks,
    help_text='Ids with subtasks: {"ids": [...]}.',
)
registry.register(
    "bulk_delete_tasks_with_subtasks",
    cmd_bulk_delete_tasks_with_subtasks,
    help_text="Delete several subtrees.",
)
registry.register(
    "bulk_delete_tasks_and_promote_subtasks",
    cmd_bulk_delete_tasks_and_promote_subtasks,
    help_text="Delete several tasks, promoting children.",
)

registry.register("create_category", cmd_create_category, help_text='{"name": ..., "color": ..., "icon": ...}.')
registry.register("get_categories", cmd_get_categories, help_text="All categories by name.")
registry.register("get_category_by_id", cmd_get_category_by_id, help_text='One category: {"id": ...}.')
registry.register("update_category", cmd_update_category, help_text="Partial category update.")
registry.register("delete_category", cmd_delete_category, help_text="Delete; tasks move to no category.")
