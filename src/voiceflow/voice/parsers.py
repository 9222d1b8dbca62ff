# src/voiceflow/voice/parsers.py

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from datetime import date
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.errors import ParseFailure
from ..core.ports import ParsedFields
from ..tasks.gateway import describe_http_error, unwrap_envelope

logger = logging.getLogger(__name__)

PARSED_KEYS = ("title", "description", "priority", "status", "due_date")


def _only_task_keys(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ParseFailure(f"parser returned {type(raw).__name__}, expected an object")
    return {k: raw[k] for k in PARSED_KEYS if k in raw}


class HttpTranscriptParser:
    """
    Parsing endpoint of the task backend:
      POST /voice/parse  {"transcript": "..."}  ->  {"parsed": {...}}
    (optionally inside a {"data": ...} envelope).
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def parse(self, transcript: str) -> ParsedFields:
        try:
            resp = await self._client.post("/voice/parse", json={"transcript": transcript})
            resp.raise_for_status()
            body = unwrap_envelope(resp.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise ParseFailure(describe_http_error(exc)) from exc

        if isinstance(body, dict) and "parsed" in body:
            body = body["parsed"]
        return _only_task_keys(body)


LLM_PARSER_SYSTEM_PROMPT = """
You are a task extraction module.

You do NOT chat with the user.

You receive a spoken transcript where the user describes one task.
Return the task fields you can infer from it.

STRICT schema (all keys optional, omit what you cannot infer):
{
  "title": short imperative title, capitalized,
  "description": extra details not in the title,
  "priority": one of "low", "medium", "high", "urgent",
  "status": one of "todo", "in_progress", "done",
  "due_date": "YYYY-MM-DD"
}

Hard rule: do NOT invent values. If the transcript does not mention a
priority or a date, leave the key out.

Resolve relative dates ("tomorrow", "next friday") against today's date,
which is given in the user message.

Output format:
Return STRICT JSON only. No extra text. No Markdown.
""".strip()


def _extract_json_object(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


class LLMTranscriptParser:
    """
    Transcript parser backed by an OpenAI-compatible chat endpoint (OpenRouter).

    Behavior:
    - tries models in the configured order
    - 404 / rate limit / network errors -> try the next model
    - auth errors -> fail fast
    - the reply must contain one JSON object; anything else is a ParseFailure
    """

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        self._models: list[str] = [m.strip() for m in (getattr(settings, "llm_models", []) or []) if m.strip()]
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set VOICEFLOW_LLM_MODELS in your .env.")

        if client is None:
            api_key = getattr(settings, "openrouter_api_key", None)
            if not api_key or not str(api_key).strip():
                raise RuntimeError("LLM API key is not set. Set VOICEFLOW_OPENROUTER_API_KEY in your .env.")
            client = OpenAI(
                base_url=str(getattr(settings, "openrouter_base_url", "")),
                api_key=str(api_key),
                timeout=httpx.Timeout(
                    connect=float(getattr(settings, "connect_timeout_seconds", 5.0)),
                    read=float(getattr(settings, "read_timeout_seconds", 15.0)),
                    write=10.0,
                    pool=float(getattr(settings, "connect_timeout_seconds", 5.0)),
                ),
                # Fall through to the next model instead of retrying.
                max_retries=0,
            )
        self._client = client
        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})

    def _complete(self, model: str, transcript: str, today: date) -> str:
        resp = self._client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": LLM_PARSER_SYSTEM_PROMPT},
                {"role": "user", "content": f"Today is {today.isoformat()}.\nTranscript: {transcript}"},
            ],
            temperature=0,
            extra_headers=self._headers or None,
        )
        content = resp.choices[0].message.content if resp.choices else None
        return content or ""

    def _parse_sync(self, transcript: str) -> ParsedFields:
        today = date.today()
        last_error: Exception | None = None

        for model in self._models:
            t0 = time.monotonic()
            try:
                raw = self._complete(model, transcript, today)
            except Exception as exc:
                if _is_auth_error(exc):
                    raise ParseFailure("LLM authentication failed. Check VOICEFLOW_OPENROUTER_API_KEY.") from exc
                logger.info("LLM parser: error on model=%s (%s), trying next", model, exc.__class__.__name__)
                last_error = exc
                continue

            if not raw.strip():
                logger.info("LLM parser: empty reply from model=%s, trying next", model)
                last_error = ParseFailure(f"model returned no content: {model}")
                continue

            try:
                data = json.loads(_extract_json_object(raw))
            except json.JSONDecodeError as exc:
                logger.info("LLM parser: non-JSON reply from model=%s, trying next", model)
                last_error = exc
                continue

            logger.debug("LLM parser: model=%s answered in %.2fs", model, time.monotonic() - t0)
            return _only_task_keys(data)

        raise ParseFailure("All LLM models failed.") from last_error

    async def parse(self, transcript: str) -> ParsedFields:
        return await asyncio.to_thread(self._parse_sync, transcript)


_LEAD_INS = re.compile(
    r"^\s*(?:please\s+)?(?:(?:remind me|remember|i need|i have|i want|don't forget)\s+to|add(?: a)? task(?: to)?|todo:?)\s+",
    re.IGNORECASE,
)


class OfflineTranscriptParser:
    """
    Offline deterministic parser used when no backend or LLM is configured.

    Only the title is inferred (the transcript minus a polite lead-in);
    every other field is left for the user to fill in during review.
    """

    async def parse(self, transcript: str) -> ParsedFields:
        text = _LEAD_INS.sub("", transcript or "").strip().rstrip(".!?")
        if not text:
            return {}
        return {"title": text[0].upper() + text[1:]}
