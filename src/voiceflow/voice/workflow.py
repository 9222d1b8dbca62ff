# src/voiceflow/voice/workflow.py

from __future__ import annotations

"""
Voice-to-task workflow.

Two layers:
- `reduce(state, event)`: a pure transition function returning the next
  state plus the side effects the caller must run (parse, create, notify).
- `VoiceWorkflow`: owns the current state, runs the effects against the
  transcript parser and the TaskStore, and feeds their results back in.

Phases:
  IDLE -> CAPTURING -> PARSING -> REVIEWING -> SUBMITTING -> IDLE
Settled outcomes (CONFIRMED / CANCELLED / FAILED) are recorded on the
state as it returns to IDLE.

Collaborator results carry the session token they were requested for.
A result whose token no longer matches the live session (cancelled,
closed, or replaced) is ignored.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from ..core.errors import InvalidTransition, MutationFailure, ParseFailure, ValidationRefusal
from ..core.ports import ParsedFields, TranscriptParser
from ..tasks.task_models import Task, TaskPayload
from .candidate import ReviewDraft, TaskCandidate

logger = logging.getLogger(__name__)


class VoicePhase(StrEnum):
    IDLE = "idle"
    CAPTURING = "capturing"
    PARSING = "parsing"
    REVIEWING = "reviewing"
    SUBMITTING = "submitting"


class VoiceOutcome(StrEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class VoiceSession:
    token: int
    transcript: str
    candidate: TaskCandidate | None = None
    draft: ReviewDraft | None = None


@dataclass(frozen=True, slots=True)
class VoiceState:
    phase: VoicePhase = VoicePhase.IDLE
    session: VoiceSession | None = None
    error: str | None = None
    outcome: VoiceOutcome | None = None
    next_token: int = 1

    @property
    def active(self) -> bool:
        return self.phase != VoicePhase.IDLE


# ---- events ----


@dataclass(frozen=True, slots=True)
class OpenCapture:
    pass


@dataclass(frozen=True, slots=True)
class TranscriptReady:
    transcript: str


@dataclass(frozen=True, slots=True)
class ParseSucceeded:
    token: int
    fields: ParsedFields


@dataclass(frozen=True, slots=True)
class ParseFailed:
    token: int
    message: str


@dataclass(frozen=True, slots=True)
class EditField:
    name: str
    value: Any


@dataclass(frozen=True, slots=True)
class Confirm:
    pass


@dataclass(frozen=True, slots=True)
class CreateSucceeded:
    token: int
    task_id: int


@dataclass(frozen=True, slots=True)
class CreateFailed:
    token: int
    message: str


@dataclass(frozen=True, slots=True)
class Cancel:
    pass


VoiceEvent = (
    OpenCapture
    | TranscriptReady
    | ParseSucceeded
    | ParseFailed
    | EditField
    | Confirm
    | CreateSucceeded
    | CreateFailed
    | Cancel
)


# ---- effects ----


@dataclass(frozen=True, slots=True)
class RequestParse:
    token: int
    transcript: str


@dataclass(frozen=True, slots=True)
class RequestCreate:
    token: int
    payload: TaskPayload


@dataclass(frozen=True, slots=True)
class Notify:
    message: str
    level: str = "info"


VoiceEffect = RequestParse | RequestCreate | Notify


@dataclass(frozen=True, slots=True)
class Transition:
    state: VoiceState
    effects: tuple[VoiceEffect, ...] = field(default_factory=tuple)


def _is_current(state: VoiceState, phase: VoicePhase, token: int) -> bool:
    return state.phase == phase and state.session is not None and state.session.token == token


def _settle(state: VoiceState, outcome: VoiceOutcome, error: str | None = None) -> VoiceState:
    return replace(state, phase=VoicePhase.IDLE, session=None, outcome=outcome, error=error)


def reduce(state: VoiceState, event: VoiceEvent) -> Transition:
    """
    Pure transition function.

    User commands in the wrong phase raise InvalidTransition; a refused
    confirmation raises ValidationRefusal. In both cases `state` is left
    as it was. Stale collaborator results return `state` unchanged.
    """
    phase = state.phase

    if isinstance(event, OpenCapture):
        if phase != VoicePhase.IDLE:
            raise InvalidTransition("Voice input is already active. Close it before starting a new one.")
        return Transition(replace(state, phase=VoicePhase.CAPTURING, error=None, outcome=None))

    if isinstance(event, TranscriptReady):
        if phase != VoicePhase.CAPTURING:
            raise InvalidTransition(f"Cannot accept a transcript while {phase.value}.")
        transcript = (event.transcript or "").strip()
        if not transcript:
            raise ValidationRefusal("Nothing was heard. Please try again.")
        token = state.next_token
        session = VoiceSession(token=token, transcript=transcript)
        return Transition(
            replace(state, phase=VoicePhase.PARSING, session=session, next_token=token + 1),
            (RequestParse(token=token, transcript=transcript),),
        )

    if isinstance(event, ParseSucceeded):
        if not _is_current(state, VoicePhase.PARSING, event.token):
            return Transition(state)
        assert state.session is not None
        candidate = TaskCandidate.from_parsed(event.fields)
        session = replace(state.session, candidate=candidate, draft=ReviewDraft.from_candidate(candidate))
        return Transition(replace(state, phase=VoicePhase.REVIEWING, session=session))

    if isinstance(event, ParseFailed):
        if not _is_current(state, VoicePhase.PARSING, event.token):
            return Transition(state)
        return Transition(
            _settle(state, VoiceOutcome.FAILED, error=event.message),
            (Notify(event.message, level="error"),),
        )

    if isinstance(event, EditField):
        if phase != VoicePhase.REVIEWING or state.session is None or state.session.draft is None:
            raise InvalidTransition(f"Nothing to edit while {phase.value}.")
        try:
            draft = state.session.draft.with_field(event.name, event.value)
        except ValueError as exc:
            raise ValidationRefusal(str(exc)) from exc
        session = replace(state.session, draft=draft)
        return Transition(replace(state, session=session, error=None))

    if isinstance(event, Confirm):
        if phase != VoicePhase.REVIEWING or state.session is None or state.session.draft is None:
            raise InvalidTransition(f"Nothing to confirm while {phase.value}.")
        payload = state.session.draft.to_payload()
        if not payload.has_title():
            raise ValidationRefusal("Title is required.")
        return Transition(
            replace(state, phase=VoicePhase.SUBMITTING, error=None),
            (RequestCreate(token=state.session.token, payload=payload),),
        )

    if isinstance(event, CreateSucceeded):
        if not _is_current(state, VoicePhase.SUBMITTING, event.token):
            return Transition(state)
        return Transition(
            _settle(state, VoiceOutcome.CONFIRMED),
            (Notify(f"Task #{event.task_id} created from voice input."),),
        )

    if isinstance(event, CreateFailed):
        if not _is_current(state, VoicePhase.SUBMITTING, event.token):
            return Transition(state)
        # Back to review with the user's edits intact.
        return Transition(
            replace(state, phase=VoicePhase.REVIEWING, error=event.message),
            (Notify(event.message, level="error"),),
        )

    if isinstance(event, Cancel):
        if phase == VoicePhase.IDLE:
            return Transition(state)
        if phase == VoicePhase.SUBMITTING:
            raise InvalidTransition("The task is already being saved.")
        return Transition(_settle(state, VoiceOutcome.CANCELLED))

    raise TypeError(f"unknown voice event: {event!r}")


VoiceListener = Callable[[VoiceState], None]
NoticeHandler = Callable[[str, str], None]


class VoiceWorkflow:
    """Runs the reducer against the real collaborators."""

    def __init__(
        self,
        parser: TranscriptParser,
        store: Any,
        *,
        parse_timeout_seconds: float = 20.0,
        on_notice: NoticeHandler | None = None,
    ) -> None:
        self._parser = parser
        self._store = store
        self._parse_timeout = max(0.1, float(parse_timeout_seconds))
        self._on_notice = on_notice
        self._state = VoiceState()
        self._listeners: list[VoiceListener] = []
        self._closed = False
        self._open_guards: list[Callable[[], None]] = []

    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def phase(self) -> VoicePhase:
        return self._state.phase

    @property
    def draft(self) -> ReviewDraft | None:
        session = self._state.session
        return session.draft if session is not None else None

    def subscribe(self, listener: VoiceListener) -> None:
        self._listeners.append(listener)

    def add_open_guard(self, guard: Callable[[], None]) -> None:
        """Register a check run before a new capture opens; it raises to refuse."""
        self._open_guards.append(guard)

    def _dispatch(self, event: VoiceEvent) -> tuple[VoiceEffect, ...]:
        before = self._state.phase
        transition = reduce(self._state, event)
        self._state = transition.state

        if self._state.phase != before:
            logger.debug("Voice workflow %s -> %s (%s)", before.value, self._state.phase.value, type(event).__name__)
            for listener in list(self._listeners):
                try:
                    listener(self._state)
                except Exception:
                    logger.exception("Voice workflow listener failed")

        for effect in transition.effects:
            if isinstance(effect, Notify):
                self._notify(effect)
        return transition.effects

    def _notify(self, effect: Notify) -> None:
        if effect.level == "error":
            logger.warning("Voice workflow: %s", effect.message)
        else:
            logger.info("Voice workflow: %s", effect.message)
        if self._on_notice is not None:
            try:
                self._on_notice(effect.level, effect.message)
            except Exception:
                logger.exception("Voice notice handler failed")

    # ---- user commands ----

    def open_capture(self) -> VoiceState:
        self._ensure_open()
        if self._state.phase == VoicePhase.IDLE:
            for guard in self._open_guards:
                guard()
        self._dispatch(OpenCapture())
        return self._state

    async def submit_transcript(self, transcript: str) -> VoiceState:
        """
        Hand a finished transcript to the parser and move to review.

        Raises ParseFailure after the workflow has returned to IDLE.
        If the session was cancelled while parsing, the late result is
        dropped and the current state is returned.
        """
        self._ensure_open()
        effects = self._dispatch(TranscriptReady(transcript))
        for effect in effects:
            if isinstance(effect, RequestParse):
                await self._run_parse(effect)
        return self._state

    def edit(self, name: str, value: Any) -> ReviewDraft:
        self._dispatch(EditField(name, value))
        assert self.draft is not None
        return self.draft

    async def confirm(self) -> Task:
        """
        Submit the reviewed draft as a normal create.

        ValidationRefusal (empty title) keeps the workflow in REVIEWING
        without any network call; MutationFailure or cancellation returns it
        to REVIEWING.
        """
        self._ensure_open()
        effects = self._dispatch(Confirm())
        for effect in effects:
            if isinstance(effect, RequestCreate):
                return await self._run_create(effect)
        raise InvalidTransition("Nothing was submitted.")

    def cancel(self) -> VoiceState:
        self._dispatch(Cancel())
        return self._state

    def close(self) -> None:
        """Discard any live session; results still in flight will be ignored."""
        if self._state.phase not in (VoicePhase.IDLE, VoicePhase.SUBMITTING):
            self._dispatch(Cancel())
        self._closed = True
        self._listeners.clear()

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidTransition("Voice input is closed.")

    # ---- effects ----

    async def _run_parse(self, effect: RequestParse) -> None:
        try:
            fields = await asyncio.wait_for(self._parser.parse(effect.transcript), timeout=self._parse_timeout)
            if not isinstance(fields, Mapping):
                raise ParseFailure(f"parser returned {type(fields).__name__}, expected an object")
        except TimeoutError:
            message = "Parsing the transcript timed out. Please try again."
        except ParseFailure as exc:
            logger.info("Transcript parse failed: %s", exc)
            message = "Failed to parse voice input. Please try again."
        except Exception:
            logger.exception("Transcript parser crashed")
            message = "Failed to parse voice input. Please try again."
        else:
            if self._closed:
                logger.debug("Dropping parse result that arrived after close")
                return
            self._dispatch(ParseSucceeded(effect.token, fields))
            return

        if self._closed:
            return
        still_current = _is_current(self._state, VoicePhase.PARSING, effect.token)
        self._dispatch(ParseFailed(effect.token, message))
        if still_current:
            raise ParseFailure(message)

    async def _run_create(self, effect: RequestCreate) -> Task:
        try:
            task = await self._store.create(effect.payload)
        except MutationFailure as exc:
            self._dispatch(CreateFailed(effect.token, str(exc) or "Failed to create task. Please try again."))
            raise
        except asyncio.CancelledError:
            # Outcome unknown; back to review so the session can be retried or discarded.
            logger.info("Voice task create was cancelled while submitting")
            message = "Saving the task was interrupted. Please check the list and try again."
            self._dispatch(CreateFailed(effect.token, message))
            raise
        self._dispatch(CreateSucceeded(effect.token, task.id))
        return task
