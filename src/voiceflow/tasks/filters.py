# src/voiceflow/tasks/filters.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .task_models import Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    """
    Optional predicates over the task list. None means "no constraint".

    Criteria are replaced as a whole when the user changes them, never
    merged field by field.
    """

    search: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None

    def is_empty(self) -> bool:
        return not self.search and self.status is None and self.priority is None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> FilterCriteria:
        """
        Build criteria from loose user input (form fields, command args).

        Blank values mean "absent". Unknown status/priority values raise
        ValueError instead of silently matching nothing.
        """
        search = str(raw.get("search") or "").strip() or None

        status_raw = str(raw.get("status") or "").strip().lower()
        priority_raw = str(raw.get("priority") or "").strip().lower()

        try:
            status = TaskStatus(status_raw) if status_raw else None
        except ValueError:
            raise ValueError(f"unknown status: {status_raw}") from None
        try:
            priority = TaskPriority(priority_raw) if priority_raw else None
        except ValueError:
            raise ValueError(f"unknown priority: {priority_raw}") from None

        return cls(search=search, status=status, priority=priority)


def _matches_search(task: Task, needle: str) -> bool:
    if needle in task.title.lower():
        return True
    return task.description is not None and needle in task.description.lower()


def apply_filters(tasks: Iterable[Task], criteria: FilterCriteria) -> list[Task]:
    """
    Derive the visible subset of `tasks`.

    Pure and order preserving. All provided constraints must hold (AND):
    - search: case-insensitive substring of title, or of description when present
    - status / priority: exact equality
    """
    out = list(tasks)
    if criteria.is_empty():
        return out

    if criteria.search:
        needle = criteria.search.lower()
        out = [t for t in out if _matches_search(t, needle)]

    if criteria.status is not None:
        out = [t for t in out if t.status == criteria.status]

    if criteria.priority is not None:
        out = [t for t in out if t.priority == criteria.priority]

    return out


class FilteredView:
    """
    Visible task list derived from a TaskStore and the active criteria.

    Recomputed on both triggers: the store publishing new contents and
    the criteria being replaced.
    """

    def __init__(self, store: Any, criteria: FilterCriteria | None = None) -> None:
        self._store = store
        self._criteria = criteria or FilterCriteria()
        self._visible: list[Task] = []
        self._listeners: list[Callable[[list[Task]], None]] = []
        store.subscribe(self._on_store_changed)
        self._recompute()

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria

    @property
    def tasks(self) -> list[Task]:
        return list(self._visible)

    def subscribe(self, listener: Callable[[list[Task]], None]) -> None:
        self._listeners.append(listener)

    def set_criteria(self, criteria: FilterCriteria) -> None:
        self._criteria = criteria
        logger.debug("Filter criteria replaced: %s", criteria)
        self._recompute()

    def _on_store_changed(self, _tasks: tuple[Task, ...]) -> None:
        self._recompute()

    def _recompute(self) -> None:
        self._visible = apply_filters(self._store.tasks, self._criteria)
        for listener in list(self._listeners):
            try:
                listener(list(self._visible))
            except Exception:
                logger.exception("FilteredView listener failed")
