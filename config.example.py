# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep the OpenRouter key in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKOPT_APP_NAME": "App display name (default: task-optimizer).",
    "TASKOPT_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Oracle / OpenRouter
    "TASKOPT_OFFLINE": "Use the rules-only offline oracle instead of OpenRouter (true/false, default: false).",
    "TASKOPT_OPENROUTER_API_KEY": (
        "OpenRouter API key. Plain OPENROUTER_API_KEY is read too. "
        "Without a key optimize/import fail with a configuration error."
    ),
    "TASKOPT_OPENROUTER_BASE_URL": "OpenRouter base URL (default: https://openrouter.ai/api/v1).",
    "TASKOPT_LLM_MODELS": (
        "Comma/space separated list of models to try in order "
        "(default: mistralai/mistral-7b-instruct)."
    ),
    "TASKOPT_LLM_TEMPERATURE": "Sampling temperature (default: 0.1).",
    "TASKOPT_LLM_MAX_TOKENS": "Max tokens per oracle answer (default: 4000).",
    "TASKOPT_LLM_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "TASKOPT_LLM_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 120).",
    "TASKOPT_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "TASKOPT_APP_TITLE": "Optional OpenRouter metadata header title.",
    # Paths (gitignored)
    "TASKOPT_DATA_DIR": "Local data directory (default: .local/task_optimizer).",
    "TASKOPT_DB_PATH": "SQLite file for tasks and cached optimizations (default: <data_dir>/tasks.sqlite3).",
    # Payload bounds
    "TASKOPT_OPTIMIZE_BATCH_LIMIT": "Max active tasks sent to the oracle per optimization (default: 50).",
    "TASKOPT_ORACLE_TITLE_CHARS": "Task titles are cut to this many chars in oracle prompts (default: 50).",
    "TASKOPT_EXTRACT_MAX_CHARS": "Document text is cut to this many chars before extraction (default: 15000).",
}
