# tests/test_sqlite_gateway.py

from __future__ import annotations

import sqlite3
from datetime import date, timedelta
from pathlib import Path

import pytest

from voiceflow.core.errors import MutationFailure
from voiceflow.storage.sqlite_gateway import SAMPLE_TASKS, SqliteTaskGateway
from voiceflow.tasks.task_models import TaskPayload, TaskPriority, TaskStatus
from voiceflow.tasks.task_store import TaskStore


@pytest.mark.asyncio
async def test_seeds_sample_tasks_once(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    gateway = SqliteTaskGateway(db)
    assert gateway.count_tasks() == len(SAMPLE_TASKS)

    # Reopening an existing database does not seed again.
    SqliteTaskGateway(db)
    assert gateway.count_tasks() == len(SAMPLE_TASKS)

    tasks = await gateway.list_tasks()
    by_title = {t.title: t for t in tasks}
    assert by_title["Fix bug in login flow"].priority == TaskPriority.URGENT
    assert by_title["Fix bug in login flow"].due_date == date.today()
    assert by_title["Team meeting preparation"].status == TaskStatus.DONE


@pytest.mark.asyncio
async def test_create_applies_defaults_and_lists_newest_first(tmp_path: Path) -> None:
    gateway = SqliteTaskGateway(tmp_path / "t.db", seed_sample_data=False)

    first = await gateway.create_task(TaskPayload(title="  First  "))
    second = await gateway.create_task(
        TaskPayload(title="Second", priority=TaskPriority.HIGH, due_date=date.today() + timedelta(days=2))
    )

    assert first.title == "First"
    assert first.priority == TaskPriority.MEDIUM
    assert first.status == TaskStatus.TODO
    assert first.created_at is not None
    assert second.due_date == date.today() + timedelta(days=2)

    assert [t.id for t in await gateway.list_tasks()] == [second.id, first.id]


@pytest.mark.asyncio
async def test_update_and_delete(tmp_path: Path) -> None:
    gateway = SqliteTaskGateway(tmp_path / "t.db", seed_sample_data=False)
    task = await gateway.create_task(TaskPayload(title="Draft", description="notes", priority=TaskPriority.LOW))

    updated = await gateway.update_task(task.id, TaskPayload.from_task(task, status=TaskStatus.IN_PROGRESS))
    assert updated.status == TaskStatus.IN_PROGRESS
    assert updated.description == "notes"
    assert updated.priority == TaskPriority.LOW

    await gateway.delete_task(task.id)
    assert await gateway.list_tasks() == []


@pytest.mark.asyncio
async def test_unknown_id_and_empty_title_are_mutation_failures(tmp_path: Path) -> None:
    gateway = SqliteTaskGateway(tmp_path / "t.db", seed_sample_data=False)

    with pytest.raises(MutationFailure, match="not found"):
        await gateway.update_task(404, TaskPayload(title="x"))
    with pytest.raises(MutationFailure, match="not found"):
        await gateway.delete_task(404)
    with pytest.raises(MutationFailure):
        await gateway.create_task(TaskPayload(title=" "))


@pytest.mark.asyncio
async def test_store_over_sqlite_sees_persisted_changes(tmp_path: Path) -> None:
    store = TaskStore(SqliteTaskGateway(tmp_path / "t.db"))
    await store.refresh()
    assert len(store.tasks) == len(SAMPLE_TASKS)

    task = await store.create(TaskPayload(title="Call mom"))
    assert store.get(task.id) is not None
    assert store.tasks[0].id == task.id


def test_migrates_old_schema(tmp_path: Path) -> None:
    db = tmp_path / "old.db"
    conn = sqlite3.connect(db)
    conn.execute("CREATE TABLE tasks (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT NOT NULL)")
    conn.execute("INSERT INTO tasks(title) VALUES ('Legacy task')")
    conn.commit()
    conn.close()

    gateway = SqliteTaskGateway(db)

    conn = sqlite3.connect(db)
    cols = {row[1] for row in conn.execute("PRAGMA table_info(tasks)")}
    conn.close()
    assert {"description", "priority", "status", "due_date", "created_at", "updated_at"} <= cols
    # Not empty, so no sample data.
    assert gateway.count_tasks() == 1


@pytest.mark.asyncio
async def test_update_keeps_unset_fields_and_clears_named_ones(tmp_path: Path) -> None:
    gateway = SqliteTaskGateway(tmp_path / "t.db", seed_sample_data=False)
    task = await gateway.create_task(
        TaskPayload(title="A", description="keep me", priority=TaskPriority.HIGH, due_date=date(2026, 11, 1))
    )

    renamed = await gateway.update_task(task.id, TaskPayload(title="B"))
    assert renamed.title == "B"
    assert renamed.description == "keep me"
    assert renamed.due_date == date(2026, 11, 1)
    assert renamed.priority == TaskPriority.HIGH
    assert renamed.status == TaskStatus.TODO

    cleared = await gateway.update_task(task.id, TaskPayload(title="B", clear=frozenset({"description", "due_date"})))
    assert cleared.description is None
    assert cleared.due_date is None
    assert cleared.priority == TaskPriority.HIGH

    [stored] = await gateway.list_tasks()
    assert stored == cleared
