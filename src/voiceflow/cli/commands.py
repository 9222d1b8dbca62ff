# src/voiceflow/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import cast

from ..core.errors import VoiceFlowError, friendly_error_message
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.task_models import CLEARABLE_FIELDS, Task, TaskStatus
from ..ui.view_state import ViewMode, board_columns
from ..voice.candidate import ReviewDraft
from ..voice.workflow import VoicePhase

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)

FIELD_ALIASES = {
    "desc": "description",
    "description": "description",
    "due": "due_date",
    "due_date": "due_date",
    "priority": "priority",
    "prio": "priority",
    "status": "status",
    "title": "title",
}

STATUS_LABELS = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.DONE: "Done",
}


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return await handler(state, args)
        except VoiceFlowError as e:
            return friendly_error_message(e)
        except ValueError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def format_task(task: Task) -> str:
    due = f" due {task.due_date.isoformat()}" if task.due_date else ""
    line = f"#{task.id} [{task.priority.value}] {task.title}{due}"
    if task.description:
        line += f"\n      {task.description}"
    return line


def render_tasks(state: AppState) -> str:
    tasks = task_api.visible_tasks(state)
    store = state.store
    lines: list[str] = []

    if store.loading and not store.loaded_once:
        return "Loading tasks..."
    if store.error:
        lines.append(f"[!] {store.error} (use /refresh to try again)")

    criteria = state.view.criteria
    if not criteria.is_empty():
        lines.append(f"Filters: {_format_criteria(state)}")

    if state.ui.mode == ViewMode.BOARD:
        for status, column in board_columns(tasks).items():
            lines.append(f"== {STATUS_LABELS[status]} ({len(column)})")
            lines.extend(f"  {format_task(t)}" for t in column)
    else:
        if not tasks:
            lines.append("No tasks.")
        for t in tasks:
            lines.append(f"  {format_task(t)} ({STATUS_LABELS[t.status]})")

    return "\n".join(lines)


def _format_criteria(state: AppState) -> str:
    c = state.view.criteria
    parts = []
    if c.search:
        parts.append(f'search="{c.search}"')
    if c.status is not None:
        parts.append(f"status={c.status.value}")
    if c.priority is not None:
        parts.append(f"priority={c.priority.value}")
    return " ".join(parts) or "none"


def render_review(state: AppState) -> str:
    session = state.voice.state.session
    if session is None or session.draft is None or session.candidate is None:
        return "No voice task to review."

    draft = session.draft
    candidate = session.candidate

    def show(name: str, value: object) -> str:
        if value is None or value == "":
            return "(not detected)" if not getattr(candidate, name).known else "(empty)"
        return str(getattr(value, "value", value))

    lines = [
        f'Heard: "{session.transcript}"',
        f"  title:       {show('title', draft.title)}",
        f"  description: {show('description', draft.description)}",
        f"  priority:    {show('priority', draft.priority)}",
        f"  status:      {show('status', draft.status)}",
        f"  due_date:    {show('due_date', draft.due_date)}",
        "Use /set field=value to correct, /confirm to save, /cancel to discard.",
    ]
    if state.voice.state.error:
        lines.insert(0, f"[!] {state.voice.state.error}")
    return "\n".join(lines)


def _split_fields(args: list[str]) -> tuple[list[str], dict[str, str]]:
    words: list[str] = []
    fields: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key.lower() in FIELD_ALIASES:
            fields[FIELD_ALIASES[key.lower()]] = value
        else:
            words.append(arg)
    return words, fields


def _apply_fields(draft: ReviewDraft, fields: dict[str, str]) -> ReviewDraft:
    for name, value in fields.items():
        draft = draft.with_field(name, value)
    return draft


def _parse_id(raw: str) -> int:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        raise ValueError(f"not a task id: {raw}") from None


# ---- commands ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str]) -> str:
    return render_tasks(state)


async def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    return (
        "Status:\n"
        f"  Tasks: {len(store.tasks)} loaded, {len(task_api.visible_tasks(state))} visible\n"
        f"  Last load error: {store.error or 'none'}\n"
        f"  View: {state.ui.mode.value}\n"
        f"  Filters: {_format_criteria(state)}\n"
        f"  Voice: {state.voice.phase.value}"
    )


async def cmd_view(state: AppState, args: list[str]) -> str:
    """
    /view        -> toggle board/list
    /view board  -> board (kanban) columns
    /view list   -> flat list
    """
    if not args:
        state.ui.toggle_mode()
    else:
        arg = args[0].lower()
        if arg not in ("board", "kanban", "list"):
            return "Usage: /view board | /view list"
        state.ui.set_mode(ViewMode.from_setting(arg))
    return render_tasks(state)


async def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter                                   -> show active filters
    /filter clear                             -> remove all filters
    /filter search="text" status=.. priority=..  -> replace filters
    """
    if not args:
        return f"Filters: {_format_criteria(state)}"
    if args[0].lower() in ("clear", "off", "none"):
        task_api.clear_filters(state)
        return render_tasks(state)

    raw: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep or key.lower() not in ("search", "status", "priority"):
            return 'Usage: /filter search="text" status=todo|in_progress|done priority=low|medium|high|urgent'
        raw[key.lower()] = value
    task_api.set_filters(state, raw)
    return render_tasks(state)


async def cmd_refresh(state: AppState, args: list[str]) -> str:
    await task_api.load_tasks(state)
    return render_tasks(state)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add Buy milk priority=high due=2026-10-20 desc="2 liters" """
    words, fields = _split_fields(args)
    draft = ReviewDraft(title=" ".join(words))
    draft = _apply_fields(draft, fields)
    task_api.begin_edit(state)
    try:
        task = await task_api.create_task(state, draft.to_payload())
    finally:
        task_api.cancel_edit(state)
    return f"Created #{task.id}: {task.title}"


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit 3 title="New title" priority=low
    /edit 3 due=      -> remove the due date (same for desc=)
    """
    if not args:
        return "Usage: /edit <id> field=value ..."
    task = cast(Task, task_api.begin_edit(state, _parse_id(args[0])))
    try:
        _, fields = _split_fields(args[1:])
        draft = ReviewDraft(
            title=task.title,
            description=task.description,
            priority=task.priority,
            status=task.status,
            due_date=task.due_date,
        )
        draft = _apply_fields(draft, fields)
        cleared = frozenset(
            name for name, value in fields.items() if name in CLEARABLE_FIELDS and not value.strip()
        )
        payload = replace(draft.to_payload(), clear=cleared)
        updated = await task_api.update_editing_task(state, payload)
    finally:
        task_api.cancel_edit(state)
    return f"Updated #{updated.id}: {updated.title}"


async def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /move <id> todo|in_progress|done"
    try:
        status = TaskStatus(args[1].lower())
    except ValueError:
        return "Usage: /move <id> todo|in_progress|done"
    task = await task_api.move_task(state, _parse_id(args[0]), status)
    return f"Moved #{task.id} to {STATUS_LABELS[task.status]}"


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /delete <id>"
    task_id = _parse_id(args[0])
    await task_api.delete_task(state, task_id)
    return f"Deleted #{task_id}"


async def cmd_voice(state: AppState, args: list[str]) -> str:
    """
    /voice               -> start voice input; the next line you type is the transcript
    /voice <transcript>  -> parse the transcript right away
    """
    state.voice.open_capture()
    if not args:
        return "Listening... type what you would say (or /cancel)."
    await state.voice.submit_transcript(" ".join(args))
    return render_review(state)


async def cmd_review(state: AppState, args: list[str]) -> str:
    return render_review(state)


async def cmd_set(state: AppState, args: list[str]) -> str:
    if state.voice.phase != VoicePhase.REVIEWING:
        return "No voice task to review."
    _, fields = _split_fields(args)
    if not fields:
        return "Usage: /set title=... description=... priority=... status=... due=YYYY-MM-DD"
    for name, value in fields.items():
        state.voice.edit(name, value)
    return render_review(state)


async def cmd_confirm(state: AppState, args: list[str]) -> str:
    task = await state.voice.confirm()
    return f"Created #{task.id}: {task.title}"


async def cmd_cancel(state: AppState, args: list[str]) -> str:
    if not state.voice.state.active:
        return "Nothing to cancel."
    state.voice.cancel()
    return "Voice input discarded."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show tasks in the current view.", aliases=["ls"])
registry.register("status", cmd_status, help_text="Show store/view/voice status.")
registry.register("view", cmd_view, help_text="Switch view: /view board | /view list.")
registry.register("filter", cmd_filter, help_text='Filter: /filter search="x" status=.. priority=.. | /filter clear.')
registry.register("refresh", cmd_refresh, help_text="Reload tasks from the backend.")
registry.register("add", cmd_add, help_text="Create: /add <title> priority=.. status=.. due=YYYY-MM-DD desc=..")
registry.register("edit", cmd_edit, help_text="Edit: /edit <id> field=value ...")
registry.register("move", cmd_move, help_text="Move: /move <id> todo|in_progress|done.")
registry.register("delete", cmd_delete, help_text="Delete: /delete <id>.", aliases=["rm"])
registry.register("voice", cmd_voice, help_text="Voice input: /voice [transcript].")
registry.register("review", cmd_review, help_text="Show the voice task under review.")
registry.register("set", cmd_set, help_text="Correct a reviewed voice task: /set field=value.")
registry.register("confirm", cmd_confirm, help_text="Save the reviewed voice task.")
registry.register("cancel", cmd_cancel, help_text="Discard the current voice input.")
