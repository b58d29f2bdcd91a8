# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from task_optimizer.config import Settings

_VARS = (
    "TASKOPT_DATA_DIR",
    "TASKOPT_DB_PATH",
    "TASKOPT_OPENROUTER_API_KEY",
    "OPENROUTER_API_KEY",
    "TASKOPT_LLM_MODELS",
    "TASKOPT_LLM_MAX_TOKENS",
    "TASKOPT_OPTIMIZE_BATCH_LIMIT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = Settings.from_env()
    assert s.openrouter_api_key is None
    assert s.llm_models == ["mistralai/mistral-7b-instruct"]
    assert s.llm_temperature == 0.1
    assert s.llm_max_tokens == 4000
    assert s.optimize_batch_limit == 50
    assert s.oracle_title_chars == 50
    assert s.extract_max_chars == 15000
    assert s.db_path == s.data_dir / "tasks.sqlite3"


def test_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKOPT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-plain")
    monkeypatch.setenv("TASKOPT_LLM_MODELS", "a/one, b/two  c/three")
    monkeypatch.setenv("TASKOPT_LLM_MAX_TOKENS", "not a number")
    monkeypatch.setenv("TASKOPT_OPTIMIZE_BATCH_LIMIT", "0")

    s = Settings.from_env()

    assert s.db_path == tmp_path / "tasks.sqlite3"
    assert s.openrouter_api_key == "sk-plain"
    assert s.llm_models == ["a/one", "b/two", "c/three"]
    assert s.llm_max_tokens == 4000
    assert s.optimize_batch_limit == 1


def test_prefixed_key_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-plain")
    monkeypatch.setenv("TASKOPT_OPENROUTER_API_KEY", "sk-prefixed")
    assert Settings.from_env().openrouter_api_key == "sk-prefixed"
