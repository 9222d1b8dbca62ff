# src/voiceflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the persistence backend and the transcript parser swappable
(REST API, local SQLite, LLM, offline) and makes testing easier.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from ..tasks.task_models import Task, TaskPayload

ParsedFields = Mapping[str, Any]
# Best-effort output of a transcript parser: any subset of
# {"title", "description", "priority", "status", "due_date"}.


class TaskGateway(Protocol):
    """
    Persistence collaborator.

    Every call is a single attempt: transport or server-side failures are
    raised as FetchFailure (list_tasks) or MutationFailure (the rest).
    """

    async def list_tasks(self) -> list[Task]: ...

    async def create_task(self, payload: TaskPayload) -> Task: ...

    async def update_task(self, task_id: int, payload: TaskPayload) -> Task: ...

    async def delete_task(self, task_id: int) -> None: ...

    async def aclose(self) -> None: ...


class TranscriptParser(Protocol):
    """Turns a plain-text transcript into best-effort task fields."""

    async def parse(self, transcript: str) -> ParsedFields: ...
