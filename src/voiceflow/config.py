# src/voiceflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Without a REST backend the app runs against a local SQLite file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "VOICEFLOW"

DEFAULT_LLM_MODELS = [
    "x-ai/grok-4.1-fast:free",
    "qwen/qwen-2.5-72b-instruct:free",
    "deepseek/deepseek-chat-v3-0324:free",
]

PARSER_BACKENDS = ("api", "llm", "offline")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _pick_parser(raw: str, *, api_base_url: str, openrouter_api_key: str | None) -> str:
    s = raw.strip().lower()
    if s in PARSER_BACKENDS:
        return s
    if api_base_url:
        return "api"
    if openrouter_api_key:
        return "llm"
    return "offline"


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    seed_sample_data: bool

    # ---- Task backend ----
    api_base_url: str
    api_token: str
    connect_timeout_seconds: float
    read_timeout_seconds: float

    # ---- Voice parsing ----
    parser: str
    parse_timeout_seconds: float
    openrouter_api_key: str | None
    openrouter_base_url: str
    llm_models: list[str]
    extra_headers: dict[str, str]

    # ---- UI ----
    default_view: str
    console_enabled: bool

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "voiceflow").strip() or "voiceflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/voiceflow"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "tasks.sqlite3")
        seed_sample_data = _env_bool(_k("SEED_SAMPLE_DATA"), True)

        api_base_url = _env(_k("API_BASE_URL"), "").strip()
        api_token = _env(_k("API_TOKEN"), "").strip()
        connect_timeout_seconds = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout_seconds = _env_float(_k("READ_TIMEOUT_SECONDS"), 15.0)

        openrouter_api_key = _env(_k("OPENROUTER_API_KEY"), "").strip() or None
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = _env_list(_k("LLM_MODELS"), DEFAULT_LLM_MODELS)
        parser = _pick_parser(
            _env(_k("PARSER"), ""),
            api_base_url=api_base_url,
            openrouter_api_key=openrouter_api_key,
        )
        parse_timeout_seconds = _env_float(_k("PARSE_TIMEOUT_SECONDS"), 20.0)

        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": app_name,
        }

        default_view = _env(_k("DEFAULT_VIEW"), "board")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            seed_sample_data=seed_sample_data,
            api_base_url=api_base_url,
            api_token=api_token,
            connect_timeout_seconds=connect_timeout_seconds,
            read_timeout_seconds=read_timeout_seconds,
            parser=parser,
            parse_timeout_seconds=parse_timeout_seconds,
            openrouter_api_key=openrouter_api_key,
            openrouter_base_url=openrouter_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            default_view=default_view,
            console_enabled=console_enabled,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
