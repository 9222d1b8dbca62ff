# src/voiceflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.filters import FilteredView
from ..tasks.task_store import TaskStore
from ..ui.view_state import ViewController, ViewMode
from ..voice.workflow import NoticeHandler, VoiceWorkflow
from .ports import TaskGateway, TranscriptParser


@dataclass
class AppState:
    """
    The one application-state aggregate.

    Each part is owned and mutated only by its component:
    - store: canonical task collection (TaskStore)
    - view:  active filter criteria + derived visible list (FilteredView)
    - ui:    view mode / open modal / task being edited (ViewController)
    - voice: the single voice session, if any (VoiceWorkflow)
    """

    # Store Settings on the state for easy access in other modules later.
    settings: object

    gateway: TaskGateway
    parser: TranscriptParser

    store: TaskStore
    view: FilteredView
    ui: ViewController
    voice: VoiceWorkflow


def build_app_state(
    settings: object,
    *,
    gateway: TaskGateway,
    parser: TranscriptParser,
    on_notice: NoticeHandler | None = None,
) -> AppState:
    """Wire the core components around the given collaborators."""
    store = TaskStore(gateway)
    view = FilteredView(store)
    ui = ViewController(ViewMode.from_setting(str(getattr(settings, "default_view", "board"))))
    voice = VoiceWorkflow(
        parser,
        store,
        parse_timeout_seconds=float(getattr(settings, "parse_timeout_seconds", 20.0)),
        on_notice=on_notice,
    )
    voice.add_open_guard(ui.ensure_voice_allowed)
    voice.subscribe(lambda vs: ui.sync_voice(vs.phase))

    return AppState(
        settings=settings,
        gateway=gateway,
        parser=parser,
        store=store,
        view=view,
        ui=ui,
        voice=voice,
    )
