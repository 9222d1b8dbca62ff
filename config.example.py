# config.example.py

"""
Documentation-only module (safe to commit).

voiceflow reads its configuration from environment variables, optionally
loaded from a local `.env` file (gitignored). Never commit API tokens.

Without VOICEFLOW_API_BASE_URL the app keeps tasks in a local SQLite file,
seeded with a few sample tasks on first start.
"""

ENV_VARS = {
    # App / logging
    "VOICEFLOW_APP_NAME": "App display name (default: voiceflow).",
    "VOICEFLOW_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "VOICEFLOW_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Local data
    "VOICEFLOW_DATA_DIR": "Local data directory for logs and the SQLite file (default: .local/voiceflow).",
    "VOICEFLOW_DB_PATH": "SQLite file used when no REST backend is set (default: <data_dir>/tasks.sqlite3).",
    "VOICEFLOW_SEED_SAMPLE_DATA": "Seed sample tasks into an empty local database (true/false).",
    # Task backend
    "VOICEFLOW_API_BASE_URL": "REST task backend, e.g. http://localhost:3001/api (empty = local SQLite).",
    "VOICEFLOW_API_TOKEN": "Optional bearer token for the REST backend.",
    "VOICEFLOW_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "VOICEFLOW_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 15).",
    # Voice parsing
    "VOICEFLOW_PARSER": "Transcript parser: api | llm | offline (default: picked from what is configured).",
    "VOICEFLOW_PARSE_TIMEOUT_SECONDS": "Upper bound for one transcript parse (default: 20).",
    "VOICEFLOW_OPENROUTER_API_KEY": "OpenRouter API key (required only for the llm parser).",
    "VOICEFLOW_OPENROUTER_BASE_URL": "OpenAI-compatible endpoint (default: https://openrouter.ai/api/v1).",
    "VOICEFLOW_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "VOICEFLOW_HTTP_REFERER": "Optional OpenRouter metadata header.",
    # UI
    "VOICEFLOW_DEFAULT_VIEW": "Initial view: board (alias: kanban) or list.",
}
