# src/task_optimizer/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the oracle key is checked on first call).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKOPT"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env never overrides variables already set in the environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


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


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Oracle / OpenRouter ----
    offline: bool
    openrouter_api_key: str | None
    openrouter_base_url: str
    llm_models: list[str]
    extra_headers: dict[str, str]
    llm_temperature: float
    llm_max_tokens: int
    llm_connect_timeout_seconds: float
    llm_read_timeout_seconds: float

    # ---- Payload bounds ----
    optimize_batch_limit: int
    oracle_title_chars: int
    extract_max_chars: int

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "task-optimizer")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task_optimizer"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "tasks.sqlite3")

        # Rules-only oracle; must be asked for explicitly, a missing key is an error otherwise.
        offline = _env_bool(_k("OFFLINE"), False)
        openrouter_api_key = _first_env(_k("OPENROUTER_API_KEY"), "OPENROUTER_API_KEY", default=None)
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")

        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": _env(_k("APP_TITLE"), app_name),
        }

        llm_models = _env_list(_k("LLM_MODELS"), ["mistralai/mistral-7b-instruct"])
        llm_temperature = _env_float(_k("LLM_TEMPERATURE"), 0.1)
        llm_max_tokens = _env_int(_k("LLM_MAX_TOKENS"), 4000)
        llm_connect_timeout_seconds = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        llm_read_timeout_seconds = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 120.0)

        optimize_batch_limit = max(1, _env_int(_k("OPTIMIZE_BATCH_LIMIT"), 50))
        oracle_title_chars = max(1, _env_int(_k("ORACLE_TITLE_CHARS"), 50))
        extract_max_chars = max(1, _env_int(_k("EXTRACT_MAX_CHARS"), 15000))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            offline=offline,
            openrouter_api_key=openrouter_api_key,
            openrouter_base_url=openrouter_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            llm_temperature=llm_temperature,
            llm_max_tokens=llm_max_tokens,
            llm_connect_timeout_seconds=llm_connect_timeout_seconds,
            llm_read_timeout_seconds=llm_read_timeout_seconds,
            optimize_batch_limit=optimize_batch_limit,
            oracle_title_chars=oracle_title_chars,
            extract_max_chars=extract_max_chars,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
