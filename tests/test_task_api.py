# tests/test_task_api.py

from __future__ import annotations

import pytest

from voiceflow.core.errors import MutationFailure, ValidationRefusal
from voiceflow.tasks import task_api
from voiceflow.tasks.task_models import TaskPayload, TaskPriority, TaskStatus
from voiceflow.ui.view_state import Modal


@pytest.mark.asyncio
async def test_load_and_filter(state) -> None:
    await task_api.load_tasks(state)
    assert [t.id for t in task_api.visible_tasks(state)] == [1, 2, 3]

    task_api.set_filters(state, {"search": "milk"})
    assert [t.id for t in task_api.visible_tasks(state)] == [2]

    # Replacement, not merge: the search is gone.
    task_api.set_filters(state, {"status": "in_progress"})
    assert [t.id for t in task_api.visible_tasks(state)] == [3]

    task_api.clear_filters(state)
    assert len(task_api.visible_tasks(state)) == 3


@pytest.mark.asyncio
async def test_create_refuses_empty_title_before_io(state, gateway) -> None:
    task_api.begin_edit(state)
    with pytest.raises(ValidationRefusal):
        await task_api.create_task(state, TaskPayload(title="   "))

    assert gateway.calls == []
    assert state.ui.state.modal == Modal.TASK_FORM


@pytest.mark.asyncio
async def test_create_closes_form_and_shows_new_task(state) -> None:
    await task_api.load_tasks(state)
    task_api.begin_edit(state)

    task = await task_api.create_task(state, TaskPayload(title="Water plants", priority=TaskPriority.LOW))

    assert state.ui.state.modal == Modal.NONE
    assert task.id in [t.id for t in task_api.visible_tasks(state)]


@pytest.mark.asyncio
async def test_failed_create_keeps_form_open(state, gateway) -> None:
    await task_api.load_tasks(state)
    task_api.begin_edit(state)
    gateway.fail_mutations = True

    with pytest.raises(MutationFailure):
        await task_api.create_task(state, TaskPayload(title="Water plants"))

    assert state.ui.state.modal == Modal.TASK_FORM
    assert len(state.store.tasks) == 3


@pytest.mark.asyncio
async def test_edit_flow_updates_the_opened_task(state, gateway) -> None:
    await task_api.load_tasks(state)
    task = task_api.begin_edit(state, 2)
    assert task is not None and task.title == "Buy milk"

    updated = await task_api.update_editing_task(state, TaskPayload.from_task(task, title="Buy oat milk"))

    assert updated.title == "Buy oat milk"
    assert state.store.get(2).title == "Buy oat milk"
    assert state.ui.state.editing_task_id is None
    assert "update:2" in gateway.calls


@pytest.mark.asyncio
async def test_begin_edit_unknown_task_is_refused(state) -> None:
    await task_api.load_tasks(state)
    with pytest.raises(ValidationRefusal):
        task_api.begin_edit(state, 99)


@pytest.mark.asyncio
async def test_move_sends_full_task_with_new_status(state, gateway) -> None:
    await task_api.load_tasks(state)

    moved = await task_api.move_task(state, 2, TaskStatus.DONE)

    assert moved.status == TaskStatus.DONE
    assert moved.description == "Two liters"
    assert moved.priority == TaskPriority.LOW
    assert state.store.get(2).status == TaskStatus.DONE


@pytest.mark.asyncio
async def test_move_to_same_column_is_a_no_op(state, gateway) -> None:
    await task_api.load_tasks(state)
    calls_before = list(gateway.calls)

    await task_api.move_task(state, 1, TaskStatus.TODO)
    assert gateway.calls == calls_before


@pytest.mark.asyncio
async def test_delete_removes_task(state) -> None:
    await task_api.load_tasks(state)
    await task_api.delete_task(state, 3)
    assert state.store.get(3) is None
