# src/voiceflow/tasks/gateway.py

"""
REST persistence collaborator.

Talks to the task backend over HTTP:
  GET    /tasks          -> list
  POST   /tasks          -> create
  PUT    /tasks/{id}     -> update
  DELETE /tasks/{id}     -> delete

Bodies may be bare JSON or wrapped as {"success": ..., "data": ...}.
One attempt per call; no retries.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import FetchFailure, MutationFailure
from .task_models import Task, TaskPayload

logger = logging.getLogger(__name__)


def build_timeout(settings: Any) -> httpx.Timeout:
    connect_s = float(getattr(settings, "connect_timeout_seconds", 5.0))
    read_s = float(getattr(settings, "read_timeout_seconds", 15.0))
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def build_http_client(
    settings: Any,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Shared AsyncClient for the task gateway and the HTTP transcript parser."""
    base_url = str(getattr(settings, "api_base_url", "") or "").strip()
    if not base_url:
        raise RuntimeError("Task API base URL is not set. Set VOICEFLOW_API_BASE_URL in your .env.")

    headers = {"Accept": "application/json"}
    token = str(getattr(settings, "api_token", "") or "").strip()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    return httpx.AsyncClient(
        base_url=base_url,
        headers=headers,
        timeout=build_timeout(settings),
        transport=transport,
    )


def unwrap_envelope(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


def describe_http_error(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        resp = exc.response
        detail = ""
        try:
            body = resp.json()
            if isinstance(body, dict):
                detail = str(body.get("message") or body.get("error") or "").strip()
        except ValueError:
            detail = ""
        return f"HTTP {resp.status_code}" + (f": {detail}" if detail else "")
    if isinstance(exc, httpx.TimeoutException):
        return "request timed out"
    if isinstance(exc, httpx.HTTPError):
        return f"network error ({exc.__class__.__name__})"
    return str(exc) or exc.__class__.__name__


class HttpTaskGateway:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        resp = await self._client.request(method, url, **kwargs)
        resp.raise_for_status()
        if resp.status_code == 204 or not resp.content:
            return None
        return unwrap_envelope(resp.json())

    @staticmethod
    def _check_payload(payload: TaskPayload) -> None:
        # Shape only; semantic validation belongs to persistence.
        if not isinstance(payload, TaskPayload) or not payload.has_title():
            raise MutationFailure("Task payload must carry a non-empty title.")

    @staticmethod
    def _task_from_body(body: Any, payload: TaskPayload, task_id: int | None = None) -> Task:
        # Some backends answer a create with just {"id": ...}; fill in from the payload.
        if isinstance(body, dict) and body.get("title"):
            return Task.from_dict(body)
        raw: dict[str, Any] = payload.to_dict()
        if isinstance(body, dict) and body.get("id") is not None:
            raw["id"] = body["id"]
        elif isinstance(body, (int, str)) and str(body).isdigit():
            raw["id"] = int(body)
        elif task_id is not None:
            raw["id"] = task_id
        return Task.from_dict(raw)

    async def list_tasks(self) -> list[Task]:
        try:
            body = await self._request("GET", "/tasks")
        except (httpx.HTTPError, ValueError) as exc:
            raise FetchFailure(describe_http_error(exc)) from exc

        if body is None:
            return []
        if not isinstance(body, list):
            raise FetchFailure(f"unexpected task list shape: {type(body).__name__}")

        tasks: list[Task] = []
        for raw in body:
            try:
                tasks.append(Task.from_dict(raw))
            except (TypeError, ValueError):
                logger.warning("Skipping malformed task row: %r", raw)
        return tasks

    async def create_task(self, payload: TaskPayload) -> Task:
        self._check_payload(payload)
        try:
            body = await self._request("POST", "/tasks", json=payload.to_dict())
            task = self._task_from_body(body, payload)
        except (httpx.HTTPError, ValueError) as exc:
            raise MutationFailure(f"Failed to create task ({describe_http_error(exc)}).") from exc
        logger.debug("Task created id=%s", task.id)
        return task

    async def update_task(self, task_id: int, payload: TaskPayload) -> Task:
        self._check_payload(payload)
        try:
            body = await self._request("PUT", f"/tasks/{int(task_id)}", json=payload.to_dict())
            task = self._task_from_body(body, payload, task_id=int(task_id))
        except (httpx.HTTPError, ValueError) as exc:
            raise MutationFailure(f"Failed to update task ({describe_http_error(exc)}).") from exc
        logger.debug("Task updated id=%s", task.id)
        return task

    async def delete_task(self, task_id: int) -> None:
        try:
            await self._request("DELETE", f"/tasks/{int(task_id)}")
        except (httpx.HTTPError, ValueError) as exc:
            raise MutationFailure(f"Failed to delete task ({describe_http_error(exc)}).") from exc
        logger.debug("Task deleted id=%s", task_id)
