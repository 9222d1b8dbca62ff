# src/voiceflow/voice/candidate.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Generic, TypeVar

from ..tasks.task_models import TaskPayload, TaskPriority, TaskStatus, parse_date

logger = logging.getLogger(__name__)

V = TypeVar("V")

REVIEW_FIELDS = ("title", "description", "priority", "status", "due_date")


@dataclass(frozen=True, slots=True)
class Inferred(Generic[V]):
    """
    One machine-inferred field.

    `known=False` means the parser found nothing; `known=True` with an
    empty value means it found an empty value. The review surface shows
    the two differently.
    """

    value: V | None = None
    known: bool = False

    @classmethod
    def present(cls, value: V) -> Inferred[V]:
        return cls(value=value, known=True)

    @classmethod
    def unknown(cls) -> Inferred[V]:
        return cls()

    def get(self, default: V | None = None) -> V | None:
        return self.value if self.known else default


def _infer_text(raw: Mapping[str, Any], key: str) -> Inferred[str]:
    if key not in raw or raw[key] is None:
        return Inferred.unknown()
    return Inferred.present(str(raw[key]).strip())


def _infer_enum(raw: Mapping[str, Any], key: str, enum_cls: type[Any]) -> Inferred[Any]:
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        return Inferred.unknown()
    try:
        return Inferred.present(enum_cls(str(value).strip().lower()))
    except ValueError:
        logger.warning("Parser returned unknown %s %r; leaving it for review", key, value)
        return Inferred.unknown()


def _infer_date(raw: Mapping[str, Any], key: str) -> Inferred[date]:
    value = raw.get(key)
    if value is None or value == "":
        return Inferred.unknown()
    try:
        parsed = parse_date(value)
    except ValueError:
        logger.warning("Parser returned unparseable %s %r; leaving it for review", key, value)
        return Inferred.unknown()
    return Inferred.present(parsed) if parsed is not None else Inferred.unknown()


@dataclass(frozen=True, slots=True)
class TaskCandidate:
    """Parsed, not yet reviewed, task fields."""

    title: Inferred[str]
    description: Inferred[str]
    priority: Inferred[TaskPriority]
    status: Inferred[TaskStatus]
    due_date: Inferred[date]

    @classmethod
    def from_parsed(cls, raw: Mapping[str, Any] | None) -> TaskCandidate:
        raw = raw or {}
        return cls(
            title=_infer_text(raw, "title"),
            description=_infer_text(raw, "description"),
            priority=_infer_enum(raw, "priority", TaskPriority),
            status=_infer_enum(raw, "status", TaskStatus),
            due_date=_infer_date(raw, "due_date"),
        )

    def missing_fields(self) -> list[str]:
        return [name for name in REVIEW_FIELDS if not getattr(self, name).known]


@dataclass(frozen=True, slots=True)
class ReviewDraft:
    """
    What the review surface edits: pre-filled from the candidate's known
    values, None where the parser found nothing.
    """

    title: str = ""
    description: str | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    due_date: date | None = None

    @classmethod
    def from_candidate(cls, candidate: TaskCandidate) -> ReviewDraft:
        return cls(
            title=candidate.title.get("") or "",
            description=candidate.description.get() or None,
            priority=candidate.priority.get(),
            status=candidate.status.get(),
            due_date=candidate.due_date.get(),
        )

    def with_field(self, name: str, value: Any) -> ReviewDraft:
        """
        Return a copy with one field changed by the user.

        Strings are coerced to the field's type; blank clears an optional
        field. Raises ValueError on unknown fields or bad values.
        """
        if name not in REVIEW_FIELDS:
            raise ValueError(f"unknown field: {name}")

        if name == "title":
            return replace(self, title="" if value is None else str(value))

        blank = value is None or (isinstance(value, str) and not value.strip())
        if blank:
            return replace(self, **{name: None})

        if name == "description":
            return replace(self, description=str(value))
        if name == "priority":
            try:
                return replace(self, priority=TaskPriority(str(value).strip().lower()))
            except ValueError:
                raise ValueError(f"unknown priority: {value}") from None
        if name == "status":
            try:
                return replace(self, status=TaskStatus(str(value).strip().lower()))
            except ValueError:
                raise ValueError(f"unknown status: {value}") from None
        return replace(self, due_date=parse_date(value))

    def to_payload(self) -> TaskPayload:
        return TaskPayload(
            title=self.title.strip(),
            description=self.description,
            priority=self.priority,
            status=self.status,
            due_date=self.due_date,
        )
