# tests/test_voice_workflow.py

from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from voiceflow.core.errors import InvalidTransition, MutationFailure, ParseFailure, ValidationRefusal
from voiceflow.tasks import task_api
from voiceflow.tasks.task_models import TaskPayload, TaskPriority
from voiceflow.tasks.task_store import TaskStore
from voiceflow.ui.view_state import Modal
from voiceflow.voice.candidate import TaskCandidate
from voiceflow.voice.workflow import (
    Cancel,
    OpenCapture,
    ParseSucceeded,
    RequestParse,
    TranscriptReady,
    VoiceOutcome,
    VoicePhase,
    VoiceState,
    VoiceWorkflow,
    reduce,
)

from .fakes import FakeTaskGateway, ScriptedParser


def _workflow(parser: ScriptedParser, gateway: FakeTaskGateway | None = None, **kwargs) -> tuple[VoiceWorkflow, FakeTaskGateway]:
    gateway = gateway or FakeTaskGateway()
    return VoiceWorkflow(parser, TaskStore(gateway), parse_timeout_seconds=1.0, **kwargs), gateway


# ---- reducer ----


def test_cancel_while_idle_is_a_no_op() -> None:
    state = VoiceState()
    assert reduce(state, Cancel()).state is state


def test_open_twice_is_refused() -> None:
    state = reduce(VoiceState(), OpenCapture()).state
    assert state.phase == VoicePhase.CAPTURING
    with pytest.raises(InvalidTransition):
        reduce(state, OpenCapture())


def test_transcript_requests_parse_with_fresh_token() -> None:
    state = reduce(VoiceState(), OpenCapture()).state
    transition = reduce(state, TranscriptReady("  call mom  "))

    assert transition.state.phase == VoicePhase.PARSING
    assert transition.effects == (RequestParse(token=1, transcript="call mom"),)
    assert transition.state.next_token == 2


def test_empty_transcript_is_refused() -> None:
    state = reduce(VoiceState(), OpenCapture()).state
    with pytest.raises(ValidationRefusal):
        reduce(state, TranscriptReady("   "))


def test_stale_parse_result_leaves_state_untouched() -> None:
    state = reduce(VoiceState(), OpenCapture()).state
    state = reduce(state, TranscriptReady("call mom")).state
    state = reduce(state, Cancel()).state

    assert state.phase == VoicePhase.IDLE
    assert state.outcome == VoiceOutcome.CANCELLED
    assert reduce(state, ParseSucceeded(token=1, fields={"title": "x"})).state is state


# ---- candidate ----


def test_candidate_distinguishes_unknown_from_present() -> None:
    candidate = TaskCandidate.from_parsed({"title": "Call mom", "description": "", "priority": "bogus"})

    assert candidate.title.known and candidate.title.value == "Call mom"
    assert candidate.description.known and candidate.description.value == ""
    assert not candidate.priority.known
    assert candidate.missing_fields() == ["priority", "status", "due_date"]


# ---- workflow ----


@pytest.mark.asyncio
async def test_voice_task_created_after_review() -> None:
    tomorrow = date.today() + timedelta(days=1)
    parser = ScriptedParser({"title": "Call mom", "due_date": tomorrow.isoformat(), "priority": None})
    gateway = FakeTaskGateway()
    store = TaskStore(gateway)
    workflow = VoiceWorkflow(parser, store, parse_timeout_seconds=1.0)

    workflow.open_capture()
    state = await workflow.submit_transcript("remind me to call mom tomorrow")
    assert state.phase == VoicePhase.REVIEWING
    assert state.session is not None and state.session.candidate is not None
    assert not state.session.candidate.priority.known
    assert workflow.draft is not None
    assert workflow.draft.priority is None
    assert workflow.draft.due_date == tomorrow

    workflow.edit("priority", "low")
    task = await workflow.confirm()

    assert gateway.created[-1].to_dict() == {
        "title": "Call mom",
        "due_date": tomorrow.isoformat(),
        "priority": "low",
    }
    assert task.title == "Call mom"
    assert workflow.phase == VoicePhase.IDLE
    assert workflow.state.outcome == VoiceOutcome.CONFIRMED
    assert store.get(task.id) == task


@pytest.mark.asyncio
async def test_empty_title_is_refused_without_network_call() -> None:
    parser = ScriptedParser({"description": "something"})
    workflow, gateway = _workflow(parser)

    workflow.open_capture()
    await workflow.submit_transcript("uhh something")
    with pytest.raises(ValidationRefusal, match="Title is required"):
        await workflow.confirm()

    assert workflow.phase == VoicePhase.REVIEWING
    assert gateway.calls == []

    workflow.edit("title", "Something")
    await workflow.confirm()
    assert gateway.created[-1].title == "Something"


@pytest.mark.asyncio
async def test_parse_failure_returns_to_idle_with_error() -> None:
    notices: list[tuple[str, str]] = []
    parser = ScriptedParser(error=ParseFailure("model returned prose"))
    workflow, gateway = _workflow(parser, on_notice=lambda level, msg: notices.append((level, msg)))

    workflow.open_capture()
    with pytest.raises(ParseFailure, match="Failed to parse voice input"):
        await workflow.submit_transcript("gibberish")

    assert workflow.phase == VoicePhase.IDLE
    assert workflow.state.outcome == VoiceOutcome.FAILED
    assert workflow.state.error == "Failed to parse voice input. Please try again."
    assert notices == [("error", "Failed to parse voice input. Please try again.")]
    assert gateway.created == []


@pytest.mark.asyncio
async def test_parse_timeout_is_reported() -> None:
    parser = ScriptedParser({"title": "never"}, gate=asyncio.Event())
    workflow = VoiceWorkflow(parser, TaskStore(FakeTaskGateway()), parse_timeout_seconds=0.1)

    workflow.open_capture()
    with pytest.raises(ParseFailure, match="timed out"):
        await workflow.submit_transcript("slow one")
    assert workflow.phase == VoicePhase.IDLE


@pytest.mark.asyncio
async def test_late_parse_result_after_cancel_is_ignored() -> None:
    gate = asyncio.Event()
    parser = ScriptedParser({"title": "Call mom"}, gate=gate)
    workflow, gateway = _workflow(parser)

    workflow.open_capture()
    pending = asyncio.create_task(workflow.submit_transcript("call mom"))
    for _ in range(50):
        if parser.calls:
            break
        await asyncio.sleep(0)
    assert workflow.phase == VoicePhase.PARSING

    workflow.cancel()
    gate.set()
    state = await pending

    assert state.phase == VoicePhase.IDLE
    assert state.outcome == VoiceOutcome.CANCELLED
    assert workflow.draft is None
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_create_failure_returns_to_review_with_edits_intact() -> None:
    parser = ScriptedParser({"title": "Call mom"})
    gateway = FakeTaskGateway()
    gateway.fail_mutations = True
    workflow, _ = _workflow(parser, gateway)

    workflow.open_capture()
    await workflow.submit_transcript("call mom")
    workflow.edit("priority", "urgent")

    with pytest.raises(MutationFailure):
        await workflow.confirm()

    assert workflow.phase == VoicePhase.REVIEWING
    assert workflow.state.error
    assert workflow.draft is not None
    assert workflow.draft.priority == TaskPriority.URGENT

    gateway.fail_mutations = False
    task = await workflow.confirm()
    assert task.priority == TaskPriority.URGENT
    assert workflow.state.outcome == VoiceOutcome.CONFIRMED


@pytest.mark.asyncio
async def test_bad_edit_is_refused() -> None:
    workflow, _ = _workflow(ScriptedParser({"title": "Call mom"}))
    workflow.open_capture()
    await workflow.submit_transcript("call mom")

    with pytest.raises(ValidationRefusal):
        workflow.edit("priority", "critical")
    with pytest.raises(ValidationRefusal):
        workflow.edit("due_date", "next blursday")

    workflow.edit("due_date", "2026-11-02")
    assert workflow.draft is not None
    assert workflow.draft.due_date == date(2026, 11, 2)


@pytest.mark.asyncio
async def test_closed_workflow_refuses_new_sessions() -> None:
    workflow, _ = _workflow(ScriptedParser({"title": "x"}))
    workflow.open_capture()
    workflow.close()

    assert workflow.phase == VoicePhase.IDLE
    with pytest.raises(InvalidTransition):
        workflow.open_capture()


@pytest.mark.asyncio
async def test_ui_modal_follows_voice_phase(state) -> None:
    state.voice.open_capture()
    assert state.ui.state.modal == Modal.VOICE_INPUT

    await state.voice.submit_transcript("call mom")
    assert state.ui.state.modal == Modal.VOICE_REVIEW

    state.voice.cancel()
    assert state.ui.state.modal == Modal.NONE


@pytest.mark.asyncio
async def test_cancelled_submit_returns_to_review_and_stays_usable() -> None:
    gateway = FakeTaskGateway()
    store = TaskStore(gateway)
    workflow = VoiceWorkflow(ScriptedParser({"title": "Call mom"}), store, parse_timeout_seconds=1.0)

    workflow.open_capture()
    await workflow.submit_transcript("call mom")
    gateway.hold_lists = True

    pending = asyncio.create_task(workflow.confirm())
    await gateway.wait_for_pending(1)
    assert workflow.phase == VoicePhase.SUBMITTING

    pending.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending

    assert workflow.phase == VoicePhase.REVIEWING
    assert workflow.state.error
    assert not store.loading

    workflow.cancel()
    assert workflow.phase == VoicePhase.IDLE
    assert workflow.open_capture().phase == VoicePhase.CAPTURING


@pytest.mark.asyncio
async def test_voice_input_refused_while_task_form_is_open(state) -> None:
    await state.store.refresh()
    task_api.begin_edit(state, 1)

    with pytest.raises(InvalidTransition, match="task form"):
        state.voice.open_capture()

    assert state.voice.phase == VoicePhase.IDLE
    assert state.ui.state.modal == Modal.TASK_FORM
    assert state.ui.state.editing_task_id == 1

    updated = await task_api.update_editing_task(state, TaskPayload(title="Write final report"))
    assert updated.id == 1
    assert state.voice.open_capture().phase == VoicePhase.CAPTURING
