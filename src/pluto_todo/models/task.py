# src/pluto_todo/models/task.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..errors import ValidationError
from .dates import END_OF_DAY, START_OF_DAY, format_optional, format_timestamp, parse_due_date, utc_now

# Marks "field not present" in partial-update requests; None means "clear it".
UNSET: Any = object()


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def from_string(cls, raw: str | None) -> Priority:
        """Case-sensitive match; anything unrecognized becomes MEDIUM."""
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM

    @classmethod
    def strict(cls, raw: Any) -> Priority:
        try:
            return cls(raw)
        except ValueError:
            raise ValidationError(
                f"Unknown priority {raw!r}; expected one of {', '.join(p.value for p in cls)}"
            ) from None

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_tags(tags: Any) -> list[str]:
    """Tags behave as a set: stripped, de-duplicated, empties dropped, sorted."""
    if not tags:
        return []
    if isinstance(tags, str):
        raise ValidationError("tags must be a list of strings")
    return sorted({str(t).strip() for t in tags if str(t).strip()})


def _require_title(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("title is required")
    return raw


def _optional_id(raw: Any) -> str | None:
    if raw is None or raw == "":
        return None
    return str(raw)


def _flag(data: dict[str, Any], name: str, default: bool | None) -> bool | None:
    raw = data.get(name)
    if raw is None:
        return default
    if not isinstance(raw, bool):
        raise ValidationError(f"{name} must be a boolean")
    return raw


@dataclass(slots=True)
class CreateTaskRequest:
    title: str
    description: str | None = None
    priority: str | None = None
    due_date: str | None = None
    category_id: str | None = None
    tags: list[str] | None = None
    parent_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreateTaskRequest:
        return cls(
            title=_require_title(data.get("title")),
            description=data.get("description"),
            priority=data.get("priority"),
            due_date=data.get("due_date"),
            category_id=_optional_id(data.get("category_id")),
            tags=data.get("tags"),
            parent_id=_optional_id(data.get("parent_id")),
        )


@dataclass(slots=True)
class UpdateTaskRequest:
    """Partial update: only fields that are not UNSET are applied."""

    title: Any = UNSET
    description: Any = UNSET
    completed: Any = UNSET
    priority: Any = UNSET
    due_date: Any = UNSET
    category_id: Any = UNSET
    tags: Any = UNSET
    parent_id: Any = UNSET

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UpdateTaskRequest:
        known = {k: v for k, v in data.items() if k in _UPDATE_FIELDS}
        return cls(**known)

    def sets(self, name: str) -> bool:
        return getattr(self, name) is not UNSET


_UPDATE_FIELDS = frozenset(
    ("title", "description", "completed", "priority", "due_date", "category_id", "tags", "parent_id")
)


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str | None
    completed: bool
    priority: Priority
    due_date: datetime | None
    category_id: str | None
    tags: list[str]
    parent_id: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def new(cls, request: CreateTaskRequest, *, now: datetime | None = None) -> Task:
        """Default a creation request into a full entity (id and timestamps assigned)."""
        ts = now or utc_now()
        return cls(
            id=new_id(),
            title=_require_title(request.title),
            description=request.description,
            completed=False,
            priority=Priority.from_string(request.priority),
            due_date=parse_due_date(request.due_date),
            category_id=_optional_id(request.category_id),
            tags=normalize_tags(request.tags),
            parent_id=_optional_id(request.parent_id),
            created_at=ts,
            updated_at=ts,
        )

    def update(self, request: UpdateTaskRequest, *, now: datetime | None = None) -> None:
        if request.sets("title"):
            self.title = _require_title(request.title)
        if request.sets("description"):
            self.description = request.description
        if request.sets("completed"):
            if not isinstance(request.completed, bool):
                raise ValidationError("completed must be a boolean")
            self.completed = request.completed
        if request.sets("priority"):
            self.priority = Priority.from_string(request.priority)
        if request.sets("due_date"):
            self.due_date = parse_due_date(request.due_date)
        if request.sets("category_id"):
            self.category_id = _optional_id(request.category_id)
        if request.sets("tags"):
            self.tags = normalize_tags(request.tags)
        if request.sets("parent_id"):
            self.parent_id = _optional_id(request.parent_id)

        self.touch(now)

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or utc_now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "priority": self.priority.value,
            "due_date": format_optional(self.due_date),
            "category_id": self.category_id,
            "tags": list(self.tags),
            "parent_id": self.parent_id,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }


@dataclass(slots=True)
class TaskFilter:
    """
    Optional, AND-combined list filters.

    ``no_category`` wins over ``category_id``; ``root_only`` selects tasks
    without a parent. Bare dates in ``due_before``/``due_after`` cover the
    whole day (end-of-day and start-of-day respectively).
    """

    completed: bool | None = None
    priority: Priority | None = None
    category_id: str | None = None
    no_category: bool = False
    parent_id: str | None = None
    root_only: bool = False
    search_query: str | None = None
    due_before: str | None = None
    due_after: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TaskFilter:
        data = data or {}
        priority = data.get("priority")
        return cls(
            completed=_flag(data, "completed", None),
            priority=Priority.strict(priority) if priority is not None else None,
            category_id=_optional_id(data.get("category_id")),
            no_category=_flag(data, "no_category", False),
            parent_id=_optional_id(data.get("parent_id")),
            root_only=_flag(data, "root_only", False),
            search_query=data.get("search_query"),
            due_before=data.get("due_before"),
            due_after=data.get("due_after"),
        )

    def parse_due_before(self) -> datetime | None:
        return parse_due_date(self.due_before, END_OF_DAY)

    def parse_due_after(self) -> datetime | None:
        return parse_due_date(self.due_after, START_OF_DAY)


@dataclass(slots=True)
class TaskProgress:
    total_subtasks: int = 0
    completed_subtasks: int = 0
    progress_percentage: float = 0.0
    has_subtasks: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_subtasks": self.total_subtasks,
            "completed_subtasks": self.completed_subtasks,
            "progress_percentage": self.progress_percentage,
            "has_subtasks": self.has_subtasks,
        }


@dataclass(slots=True)
class TaskNode:
    """Nested view of one task and its children."""

    task: Task
    depth: int = 0
    children: list[TaskNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "depth": self.depth,
            "children": [c.to_dict() for c in self.children],
        }
