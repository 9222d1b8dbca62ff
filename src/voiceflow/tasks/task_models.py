# src/voiceflow/tasks/task_models.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_wire(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            logger.warning("Unknown priority %r, using medium", raw)
            return cls.MEDIUM


class TaskStatus(StrEnum):
    """Board column a task lives in."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def from_wire(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            logger.warning("Unknown status %r, using todo", raw)
            return cls.TODO


def parse_date(raw: Any) -> date | None:
    """
    Accept a calendar date in the shapes backends actually send:
    - date / datetime objects
    - "YYYY-MM-DD"
    - full ISO timestamps ("2026-10-18T00:00:00.000Z"), time part dropped
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        raise ValueError(f"not a calendar date: {raw!r}") from None


def parse_timestamp(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    s = str(raw).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        logger.debug("Unparseable timestamp %r", raw)
        return None


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    title: str
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    due_date: date | None = None

    # Owned by the persistence layer.
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Task:
        if "id" not in raw or raw["id"] is None:
            raise ValueError("task without id")
        try:
            due = parse_date(raw.get("due_date"))
        except ValueError:
            logger.warning("Task %s has an unparseable due_date %r", raw.get("id"), raw.get("due_date"))
            due = None
        desc = raw.get("description")
        return cls(
            id=int(raw["id"]),
            title=str(raw.get("title") or ""),
            description=None if desc is None else str(desc),
            priority=TaskPriority.from_wire(raw.get("priority")),
            status=TaskStatus.from_wire(raw.get("status")),
            due_date=due,
            created_at=parse_timestamp(raw.get("created_at")),
            updated_at=parse_timestamp(raw.get("updated_at")),
        )


# Optional fields that can be explicitly emptied on update.
CLEARABLE_FIELDS = frozenset({"description", "due_date"})


@dataclass(frozen=True, slots=True)
class TaskPayload:
    """
    Mutable task fields sent to persistence on create/update.

    None means "not provided": the field is left out of the wire payload.
    On create the backend applies its own default (priority=medium,
    status=todo); on update the stored value is kept. To empty a field on
    update, name it in `clear` (sent as null).
    """

    title: str
    description: str | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    due_date: date | None = None
    clear: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        unknown = set(self.clear) - CLEARABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot clear field(s): {', '.join(sorted(unknown))}")
        for name in self.clear:
            if getattr(self, name) is not None:
                raise ValueError(f"field {name} is both set and cleared")

    @classmethod
    def from_task(cls, task: Task, **changes: Any) -> TaskPayload:
        fields: dict[str, Any] = {
            "title": task.title,
            "description": task.description,
            "priority": task.priority,
            "status": task.status,
            "due_date": task.due_date,
        }
        fields.update(changes)
        return cls(**fields)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"title": self.title}
        if self.description is not None:
            out["description"] = self.description
        if self.priority is not None:
            out["priority"] = self.priority.value
        if self.status is not None:
            out["status"] = self.status.value
        if self.due_date is not None:
            out["due_date"] = self.due_date.isoformat()
        for name in sorted(self.clear):
            out[name] = None
        return out

    def has_title(self) -> bool:
        return bool((self.title or "").strip())
