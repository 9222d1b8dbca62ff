# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from voiceflow.core.state import AppState, build_app_state
from voiceflow.tasks.task_models import TaskPriority, TaskStatus

from .fakes import FakeTaskGateway, ScriptedParser, make_task


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="voiceflow-test",
        data_dir=tmp_path,
        db_path=tmp_path / "tasks.sqlite3",
        seed_sample_data=False,
        api_base_url="",
        api_token="",
        connect_timeout_seconds=1.0,
        read_timeout_seconds=1.0,
        parser="offline",
        parse_timeout_seconds=1.0,
        default_view="board",
        console_enabled=False,
    )


@pytest.fixture()
def gateway() -> FakeTaskGateway:
    return FakeTaskGateway(
        [
            make_task(1, "Write report", priority=TaskPriority.HIGH, status=TaskStatus.TODO),
            make_task(2, "Buy milk", description="Two liters", priority=TaskPriority.LOW),
            make_task(3, "Fix login bug", priority=TaskPriority.URGENT, status=TaskStatus.IN_PROGRESS),
        ]
    )


@pytest.fixture()
def parser() -> ScriptedParser:
    return ScriptedParser({"title": "Call mom"})


@pytest.fixture()
def state(settings: SimpleNamespace, gateway: FakeTaskGateway, parser: ScriptedParser) -> AppState:
    """AppState wired with deterministic fakes."""
    return build_app_state(settings, gateway=gateway, parser=parser)
