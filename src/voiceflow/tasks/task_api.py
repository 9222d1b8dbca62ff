# src/voiceflow/tasks/task_api.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..core.errors import ValidationRefusal
from ..core.state import AppState
from .filters import FilterCriteria
from .task_models import Task, TaskPayload, TaskStatus

logger = logging.getLogger(__name__)


def _require_title(payload: TaskPayload) -> None:
    if not payload.has_title():
        raise ValidationRefusal("Title is required.")


async def load_tasks(state: AppState) -> tuple[Task, ...]:
    """
    (Re)load the task collection. On failure the previous tasks stay
    visible, `state.store.error` is set, and FetchFailure is raised.
    """
    return await state.store.refresh()


def visible_tasks(state: AppState) -> list[Task]:
    return state.view.tasks


def set_filters(state: AppState, criteria: FilterCriteria | Mapping[str, Any]) -> FilterCriteria:
    """Replace the active criteria as a whole (never merged with the previous ones)."""
    if not isinstance(criteria, FilterCriteria):
        criteria = FilterCriteria.parse(criteria)
    state.view.set_criteria(criteria)
    return criteria


def clear_filters(state: AppState) -> None:
    state.view.set_criteria(FilterCriteria())


def begin_edit(state: AppState, task_id: int | None = None) -> Task | None:
    """Open the task form; with an id it edits that task, otherwise it creates."""
    task = None
    if task_id is not None:
        task = state.store.get(task_id)
        if task is None:
            raise ValidationRefusal(f"Task #{task_id} not found.")
    state.ui.open_task_form(task)
    return task


def cancel_edit(state: AppState) -> None:
    state.ui.close_task_form()


async def create_task(state: AppState, payload: TaskPayload) -> Task:
    """
    Manual create. Empty titles are refused before any I/O; the form
    stays open on failure and closes after a successful create.
    """
    _require_title(payload)
    task = await state.store.create(payload)
    state.ui.close_task_form()
    return task


async def update_task(state: AppState, task_id: int, payload: TaskPayload) -> Task:
    _require_title(payload)
    return await state.store.update(task_id, payload)


async def update_editing_task(state: AppState, payload: TaskPayload) -> Task:
    """Submit the form for the task opened with begin_edit(task_id)."""
    task_id = state.ui.state.editing_task_id
    if task_id is None:
        raise ValidationRefusal("No task is being edited.")
    task = await update_task(state, task_id, payload)
    state.ui.close_task_form()
    return task


async def delete_task(state: AppState, task_id: int) -> None:
    await state.store.delete(task_id)


async def move_task(state: AppState, task_id: int, status: TaskStatus) -> Task:
    """
    Move a card to another board column.

    Sends the stored task's full payload with only the status changed, so
    the backend does not reset the other fields.
    """
    task = state.store.get(task_id)
    if task is None:
        raise ValidationRefusal(f"Task #{task_id} not found.")
    if task.status == status:
        logger.debug("move_task: task %s already in %s", task_id, status.value)
        return task
    return await state.store.update(task_id, TaskPayload.from_task(task, status=status))
