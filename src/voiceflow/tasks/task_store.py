# src/voiceflow/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from ..core.errors import FetchFailure, MutationFailure
from ..core.ports import TaskGateway
from .task_models import Task, TaskPayload

logger = logging.getLogger(__name__)

T = TypeVar("T")

StoreListener = Callable[[tuple[Task, ...]], None]


class TaskStore:
    """
    Canonical in-memory task collection (single source of truth for views).

    Consistency policy:
    - contents only ever come from a full gateway read (server-confirmed data),
      never from optimistic local patches
    - every mutation is followed by a full refresh, issued strictly after the
      mutation resolved, whether it succeeded or not
    - each refresh replaces the whole collection in one assignment, so the
      last refresh to complete is authoritative regardless of dispatch order
    - a failed refresh keeps the last-known-good collection and sets `error`

    All mutation of store state happens on the event loop thread; no locks.
    """

    def __init__(self, gateway: TaskGateway) -> None:
        self._gateway = gateway
        self._tasks: tuple[Task, ...] = ()
        self._error: str | None = None
        self._in_flight = 0
        self._loaded_once = False
        self._closed = False
        self._listeners: list[StoreListener] = []

    # ---- read side ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._tasks

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def loaded_once(self) -> bool:
        return self._loaded_once

    def get(self, task_id: int) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def subscribe(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def close(self) -> None:
        """Stop applying results; refreshes still in flight are discarded when they land."""
        self._closed = True
        self._listeners.clear()

    # ---- refresh ----

    async def refresh(self) -> tuple[Task, ...]:
        """
        Replace the collection with the gateway's current view.

        Raises FetchFailure after recording it in `error`; the previous
        collection stays visible.
        """
        if self._closed:
            return self._tasks

        self._in_flight += 1
        try:
            fetched = await self._gateway.list_tasks()
        except FetchFailure as exc:
            self._record_fetch_failure(exc)
            raise
        except Exception as exc:
            failure = FetchFailure(f"task list request failed: {exc}")
            self._record_fetch_failure(failure)
            raise failure from exc
        finally:
            self._in_flight -= 1

        if self._closed:
            logger.debug("Discarding refresh result that arrived after close (%d tasks)", len(fetched))
            return self._tasks

        self._replace(fetched)
        return self._tasks

    def _record_fetch_failure(self, exc: Exception) -> None:
        if self._closed:
            return
        self._error = f"Failed to load tasks: {exc}"
        logger.warning("Task refresh failed, keeping %d cached tasks: %s", len(self._tasks), exc)

    def _replace(self, fetched: Iterable[Task]) -> None:
        seen: set[int] = set()
        unique: list[Task] = []
        for task in fetched:
            if task.id in seen:
                logger.warning("Duplicate task id=%s in refresh result; keeping first", task.id)
                continue
            seen.add(task.id)
            unique.append(task)

        self._tasks = tuple(unique)
        self._error = None
        self._loaded_once = True
        logger.debug("Task store refreshed: %d tasks", len(self._tasks))

        for listener in list(self._listeners):
            try:
                listener(self._tasks)
            except Exception:
                logger.exception("TaskStore listener failed")

    # ---- mutations ----

    async def mutate(self, op: Callable[[TaskGateway], Awaitable[T]], *, label: str = "mutation") -> T:
        """
        Run one gateway mutation, then refresh.

        A MutationFailure is re-raised after the trailing refresh. A failed
        trailing refresh is recorded in `error` but does not fail a mutation
        that persistence already accepted.
        """
        failure: MutationFailure | None = None
        result: T | None = None

        try:
            result = await op(self._gateway)
        except MutationFailure as exc:
            failure = exc
        except Exception as exc:
            failure = MutationFailure(f"{label} failed: {exc}")
            failure.__cause__ = exc

        if failure is not None:
            logger.warning("%s rejected: %s", label, failure)
        else:
            logger.info("%s accepted", label)

        try:
            await self.refresh()
        except FetchFailure:
            logger.info("Refresh after %s failed; store keeps last-known-good data", label)

        if failure is not None:
            raise failure
        return result  # type: ignore[return-value]

    async def create(self, payload: TaskPayload) -> Task:
        return await self.mutate(lambda gw: gw.create_task(payload), label="create")

    async def update(self, task_id: int, payload: TaskPayload) -> Task:
        return await self.mutate(lambda gw: gw.update_task(task_id, payload), label=f"update id={task_id}")

    async def delete(self, task_id: int) -> None:
        await self.mutate(lambda gw: gw.delete_task(task_id), label=f"delete id={task_id}")
