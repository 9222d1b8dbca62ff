# src/voiceflow/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_review, render_tasks
from ..core.errors import FetchFailure, VoiceFlowError, friendly_error_message
from ..core.state import AppState
from ..tasks.task_api import load_tasks
from ..voice.workflow import VoicePhase

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


async def _read_line(prompt: str) -> str:
    # input() blocks; keep the event loop free for in-flight requests.
    return await asyncio.to_thread(input, prompt)


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (view=%s).", state.ui.mode.value)
    app_name = str(getattr(state.settings, "app_name", "voiceflow"))
    _print_ts(f"[{app_name}] Type /help for commands. Use /exit to quit.\n")

    try:
        await load_tasks(state)
    except FetchFailure as e:
        _print_ts(friendly_error_message(e))
    print(render_tasks(state))

    while True:
        prompt = ">>> (voice) " if state.voice.phase == VoicePhase.CAPTURING else ">>> "
        try:
            user_input = (await _read_line(prompt)).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = await command_registry.handle(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply)
            continue

        # Plain text while capturing stands in for the speech-to-text transcript.
        if state.voice.phase == VoicePhase.CAPTURING:
            try:
                await state.voice.submit_transcript(user_input)
                _print_ts(render_review(state))
            except VoiceFlowError as e:
                _print_ts(friendly_error_message(e))
            except Exception:
                logger.exception("Voice transcript handling crashed.")
                _print_ts("Internal error while parsing voice input.")
            continue

        _print_ts("Not a command. Use /help to list available commands.")

    logger.info("Console connector finished.")
