# src/voiceflow/ui/view_state.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import StrEnum

from ..core.errors import InvalidTransition
from ..tasks.task_models import Task, TaskStatus
from ..voice.workflow import VoicePhase

logger = logging.getLogger(__name__)


class ViewMode(StrEnum):
    BOARD = "board"
    LIST = "list"

    @classmethod
    def from_setting(cls, raw: str | None) -> ViewMode:
        s = (raw or "").strip().lower()
        # "kanban" is the historical name of the board view.
        if s in ("kanban", "board", ""):
            return cls.BOARD
        try:
            return cls(s)
        except ValueError:
            return cls.BOARD


class Modal(StrEnum):
    NONE = "none"
    TASK_FORM = "task_form"
    VOICE_INPUT = "voice_input"
    VOICE_REVIEW = "voice_review"


@dataclass(frozen=True, slots=True)
class ViewState:
    """UI-only state. Never persisted, never consulted by the store or filters."""

    mode: ViewMode = ViewMode.BOARD
    modal: Modal = Modal.NONE
    editing_task_id: int | None = None


_VOICE_MODALS = {
    VoicePhase.CAPTURING: Modal.VOICE_INPUT,
    VoicePhase.PARSING: Modal.VOICE_INPUT,
    VoicePhase.REVIEWING: Modal.VOICE_REVIEW,
    VoicePhase.SUBMITTING: Modal.VOICE_REVIEW,
}


class ViewController:
    def __init__(self, mode: ViewMode = ViewMode.BOARD) -> None:
        self._state = ViewState(mode=mode)

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def mode(self) -> ViewMode:
        return self._state.mode

    def set_mode(self, mode: ViewMode) -> ViewState:
        if mode != self._state.mode:
            logger.debug("View mode %s -> %s", self._state.mode.value, mode.value)
        self._state = replace(self._state, mode=mode)
        return self._state

    def toggle_mode(self) -> ViewState:
        other = ViewMode.LIST if self._state.mode == ViewMode.BOARD else ViewMode.BOARD
        return self.set_mode(other)

    def open_task_form(self, task: Task | None = None) -> ViewState:
        """Open the manual form: edit mode for `task`, create mode when None."""
        if self._state.modal in (Modal.VOICE_INPUT, Modal.VOICE_REVIEW):
            raise InvalidTransition("Close voice input before opening the task form.")
        self._state = replace(
            self._state,
            modal=Modal.TASK_FORM,
            editing_task_id=task.id if task is not None else None,
        )
        return self._state

    def ensure_voice_allowed(self) -> None:
        """Voice input may not open over the manual task form."""
        if self._state.modal == Modal.TASK_FORM:
            raise InvalidTransition("Close the task form before starting voice input.")

    def close_task_form(self) -> ViewState:
        if self._state.modal == Modal.TASK_FORM:
            self._state = replace(self._state, modal=Modal.NONE, editing_task_id=None)
        return self._state

    def sync_voice(self, phase: VoicePhase) -> ViewState:
        """Voice modals follow the workflow phase."""
        modal = _VOICE_MODALS.get(phase)
        if modal is not None:
            self._state = replace(self._state, modal=modal, editing_task_id=None)
        elif self._state.modal in (Modal.VOICE_INPUT, Modal.VOICE_REVIEW):
            self._state = replace(self._state, modal=Modal.NONE)
        return self._state


def board_columns(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    """Group an already-filtered list into board columns, keeping order within each."""
    columns: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
    for task in tasks:
        columns[task.status].append(task)
    return columns
