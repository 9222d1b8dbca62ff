# tests/test_http_gateway.py

from __future__ import annotations

import json
from datetime import date
from types import SimpleNamespace

import httpx
import pytest

from voiceflow.core.errors import FetchFailure, MutationFailure, ParseFailure
from voiceflow.tasks.gateway import HttpTaskGateway, build_http_client
from voiceflow.tasks.task_models import TaskPayload, TaskPriority, TaskStatus
from voiceflow.voice.parsers import HttpTranscriptParser


def _settings(**overrides) -> SimpleNamespace:
    base = dict(
        api_base_url="http://tasks.test/api",
        api_token="",
        connect_timeout_seconds=1.0,
        read_timeout_seconds=1.0,
    )
    base.update(overrides)
    return SimpleNamespace(**base)


def _client(handler, **overrides) -> httpx.AsyncClient:
    return build_http_client(_settings(**overrides), transport=httpx.MockTransport(handler))


ROWS = [
    {
        "id": 2,
        "title": "Fix login bug",
        "description": None,
        "priority": "urgent",
        "status": "in_progress",
        "due_date": "2026-10-19T00:00:00.000Z",
        "created_at": "2026-10-17T09:00:00.000Z",
        "updated_at": "2026-10-17T09:00:00.000Z",
    },
    {"id": 1, "title": "Write report", "priority": "high", "status": "todo", "due_date": None},
]


def test_client_requires_base_url() -> None:
    with pytest.raises(RuntimeError):
        build_http_client(_settings(api_base_url=""))


@pytest.mark.asyncio
async def test_list_tasks_unwraps_envelope_and_skips_bad_rows() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": ROWS + [{"title": "no id"}]})

    gateway = HttpTaskGateway(_client(handler, api_token="secret"))
    tasks = await gateway.list_tasks()
    await gateway.aclose()

    assert [t.id for t in tasks] == [2, 1]
    assert tasks[0].status == TaskStatus.IN_PROGRESS
    assert tasks[0].due_date == date(2026, 10, 19)
    assert tasks[1].description is None
    assert seen[0].url.path == "/api/tasks"
    assert seen[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_list_failure_maps_to_fetch_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"success": False, "message": "db down"})

    gateway = HttpTaskGateway(_client(handler))
    with pytest.raises(FetchFailure, match="HTTP 500: db down"):
        await gateway.list_tasks()


@pytest.mark.asyncio
async def test_network_error_maps_to_fetch_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    gateway = HttpTaskGateway(_client(handler))
    with pytest.raises(FetchFailure, match="network error"):
        await gateway.list_tasks()


@pytest.mark.asyncio
async def test_create_sends_only_provided_fields_and_fills_id_only_reply() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"success": True, "data": {"id": 42}})

    gateway = HttpTaskGateway(_client(handler))
    task = await gateway.create_task(TaskPayload(title="Call mom", due_date=date(2026, 10, 19)))

    assert bodies == [{"title": "Call mom", "due_date": "2026-10-19"}]
    assert task.id == 42
    assert task.title == "Call mom"
    assert task.priority == TaskPriority.MEDIUM


@pytest.mark.asyncio
async def test_update_and_delete_hit_task_urls() -> None:
    requests: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append((request.method, request.url.path))
        if request.method == "DELETE":
            return httpx.Response(204)
        body = json.loads(request.content)
        return httpx.Response(200, json={"id": 5, **body})

    gateway = HttpTaskGateway(_client(handler))
    task = await gateway.update_task(5, TaskPayload(title="Renamed", status=TaskStatus.DONE))
    await gateway.delete_task(5)

    assert task.status == TaskStatus.DONE
    assert requests == [("PUT", "/api/tasks/5"), ("DELETE", "/api/tasks/5")]


@pytest.mark.asyncio
async def test_mutation_errors_map_to_mutation_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Task not found"})

    gateway = HttpTaskGateway(_client(handler))
    with pytest.raises(MutationFailure, match="Task not found"):
        await gateway.delete_task(9)
    with pytest.raises(MutationFailure):
        await gateway.create_task(TaskPayload(title=""))


@pytest.mark.asyncio
async def test_http_parser_reads_parsed_fields() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/voice/parse"
        assert json.loads(request.content) == {"transcript": "call mom tomorrow"}
        return httpx.Response(
            200,
            json={"success": True, "data": {"parsed": {"title": "Call mom", "due_date": "2026-10-19", "confidence": 0.9}}},
        )

    parser = HttpTranscriptParser(_client(handler))
    assert await parser.parse("call mom tomorrow") == {"title": "Call mom", "due_date": "2026-10-19"}


@pytest.mark.asyncio
async def test_http_parser_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    parser = HttpTranscriptParser(_client(handler))
    with pytest.raises(ParseFailure, match="HTTP 502"):
        await parser.parse("anything")


@pytest.mark.asyncio
async def test_update_sends_cleared_fields_as_null_and_omits_unset_ones() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"id": 5, "title": "B", "priority": "high"})

    gateway = HttpTaskGateway(_client(handler))
    await gateway.update_task(5, TaskPayload(title="B", clear=frozenset({"due_date"})))

    assert bodies == [{"title": "B", "due_date": None}]


@pytest.mark.parametrize(
    "fields",
    [
        {"clear": frozenset({"title"})},
        {"description": "still here", "clear": frozenset({"description"})},
    ],
)
def test_payload_rejects_bad_clear_markers(fields) -> None:
    with pytest.raises(ValueError):
        TaskPayload(title="B", **fields)
