# src/pluto_todo/models/category.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..errors import ValidationError
from .dates import format_timestamp, utc_now
from .task import UNSET, new_id


def _require_text(raw: Any, name: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError(f"{name} is required")
    return raw


@dataclass(slots=True)
class CreateCategoryRequest:
    name: str
    color: str
    icon: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreateCategoryRequest:
        return cls(
            name=_require_text(data.get("name"), "name"),
            color=_require_text(data.get("color"), "color"),
            icon=data.get("icon"),
        )


@dataclass(slots=True)
class UpdateCategoryRequest:
    name: Any = UNSET
    color: Any = UNSET
    icon: Any = UNSET

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UpdateCategoryRequest:
        return cls(**{k: v for k, v in data.items() if k in ("name", "color", "icon")})


@dataclass(slots=True)
class Category:
    id: str
    name: str
    color: str
    icon: str | None
    created_at: datetime

    @classmethod
    def new(cls, request: CreateCategoryRequest, *, now: datetime | None = None) -> Category:
        return cls(
            id=new_id(),
            name=_require_text(request.name, "name"),
            color=_require_text(request.color, "color"),
            icon=request.icon,
            created_at=now or utc_now(),
        )

    def update(self, request: UpdateCategoryRequest) -> None:
        if request.name is not UNSET:
            self.name = _require_text(request.name, "name")
        if request.color is not UNSET:
            self.color = _require_text(request.color, "color")
        if request.icon is not UNSET:
            self.icon = request.icon

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "icon": self.icon,
            "created_at": format_timestamp(self.created_at),
        }
