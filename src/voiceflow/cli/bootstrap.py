# src/voiceflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the persistence backend (REST API or local SQLite),
- picks the transcript parser (API endpoint, LLM, or offline),
- wires everything into AppState.
"""

from __future__ import annotations

import logging

import httpx

from ..config import get_settings
from ..core.ports import TaskGateway, TranscriptParser
from ..core.state import AppState, build_app_state
from ..storage.sqlite_gateway import SqliteTaskGateway
from ..tasks.gateway import HttpTaskGateway, build_http_client
from ..voice.parsers import HttpTranscriptParser, LLMTranscriptParser, OfflineTranscriptParser
from ..voice.workflow import NoticeHandler

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_gateway(settings, *, http_client: httpx.AsyncClient | None = None) -> TaskGateway:
    if http_client is not None:
        logger.info("Using REST task backend at %s", settings.api_base_url)
        return HttpTaskGateway(http_client)
    logger.info("No API base URL configured; using local SQLite backend at %s", settings.db_path)
    return SqliteTaskGateway(settings.db_path, seed_sample_data=settings.seed_sample_data)


def create_parser(settings, *, http_client: httpx.AsyncClient | None = None) -> TranscriptParser:
    kind = str(getattr(settings, "parser", "offline"))

    if kind == "api":
        if http_client is not None:
            return HttpTranscriptParser(http_client)
        logger.warning("Parser 'api' needs VOICEFLOW_API_BASE_URL; falling back to offline parser.")
        return OfflineTranscriptParser()

    if kind == "llm":
        try:
            return LLMTranscriptParser(settings)
        except RuntimeError as exc:
            # Fallback for demos / local runs without external services.
            logger.warning("LLM parser unavailable (%s); falling back to offline parser.", exc)
            return OfflineTranscriptParser()

    return OfflineTranscriptParser()


def create_initial_state(*, settings=None, on_notice: NoticeHandler | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    http_client = build_http_client(settings) if settings.api_base_url else None

    return build_app_state(
        settings,
        gateway=create_gateway(settings, http_client=http_client),
        parser=create_parser(settings, http_client=http_client),
        on_notice=on_notice,
    )


async def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.voice.close()
    except Exception:
        logger.debug("Voice workflow close failed.", exc_info=True)

    state.store.close()

    try:
        # Also closes the HTTP client shared with the API parser.
        await state.gateway.aclose()
    except Exception:
        logger.debug("Gateway close failed.", exc_info=True)
