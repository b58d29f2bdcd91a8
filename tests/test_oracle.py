# tests/test_oracle.py

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from task_optimizer.cli.bootstrap import build_oracle, create_initial_state
from task_optimizer.cli.commands import registry
from task_optimizer.errors import ConfigurationError, ParseError, UpstreamError
from task_optimizer.llm.client import OpenRouterOracle
from task_optimizer.llm.offline import OfflineOracle
from task_optimizer.llm.parsing import extract_json_object, strip_markup
from task_optimizer.tasks.task_models import SessionKey, Task

_URL = "https://openrouter.ai/api/v1/chat/completions"


def _status_error(cls: type[openai.APIStatusError], code: int) -> openai.APIStatusError:
    response = httpx.Response(code, request=httpx.Request("POST", _URL))
    return cls(f"HTTP {code}", response=response, body={"error": {"message": f"upstream said {code}"}})


class FakeCompletions:
    """Scripted chat.completions: per-model exception or answer text."""

    def __init__(self, script: dict[str, Exception | str]) -> None:
        self.script = script
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        result = self.script[kwargs["model"]]
        if isinstance(result, Exception):
            raise result
        message = SimpleNamespace(content=result)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _oracle(settings, script: dict[str, Exception | str]) -> tuple[OpenRouterOracle, FakeCompletions]:
    settings.openrouter_api_key = "sk-test"
    settings.llm_models = list(script)
    oracle = OpenRouterOracle(settings)
    completions = FakeCompletions(script)
    oracle._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return oracle, completions


@pytest.mark.asyncio
async def test_missing_key_is_configuration_error(settings) -> None:
    oracle = OpenRouterOracle(settings)
    assert oracle.configured is False
    with pytest.raises(ConfigurationError):
        await oracle.complete("hi")


@pytest.mark.asyncio
async def test_empty_model_list_is_configuration_error(settings) -> None:
    settings.openrouter_api_key = "sk-test"
    settings.llm_models = []
    with pytest.raises(ConfigurationError):
        await OpenRouterOracle(settings).complete("hi")


@pytest.mark.asyncio
async def test_falls_back_to_next_model_and_sends_settings(settings) -> None:
    settings.llm_temperature = 0.1
    settings.llm_max_tokens = 4000
    oracle, completions = _oracle(
        settings,
        {
            "gone/model": _status_error(openai.NotFoundError, 404),
            "busy/model": _status_error(openai.RateLimitError, 429),
            "good/model": '{"ok": true}',
        },
    )

    assert await oracle.complete("prompt") == '{"ok": true}'
    assert [c["model"] for c in completions.calls] == ["gone/model", "busy/model", "good/model"]
    assert completions.calls[-1]["temperature"] == 0.1
    assert completions.calls[-1]["max_tokens"] == 4000
    assert completions.calls[-1]["messages"] == [{"role": "user", "content": "prompt"}]

    # the 404 model is parked; the next call skips it
    completions.calls.clear()
    await oracle.complete("again")
    assert [c["model"] for c in completions.calls] == ["busy/model", "good/model"]


@pytest.mark.asyncio
async def test_auth_error_fails_fast(settings) -> None:
    oracle, completions = _oracle(
        settings,
        {"a/model": _status_error(openai.AuthenticationError, 401), "b/model": "{}"},
    )

    with pytest.raises(UpstreamError, match="upstream said 401"):
        await oracle.complete("prompt")
    assert len(completions.calls) == 1


@pytest.mark.asyncio
async def test_all_models_failing_is_upstream_error(settings) -> None:
    oracle, _ = _oracle(settings, {"only/model": _status_error(openai.RateLimitError, 429)})
    with pytest.raises(UpstreamError, match="rate-limited"):
        await oracle.complete("prompt")


@pytest.mark.asyncio
async def test_offline_oracle_answers_both_prompt_kinds() -> None:
    oracle = OfflineOracle()
    assert json.loads(await oracle.complete("You are an AI Task Extractor. ...")) == {"tasks": []}
    answer = json.loads(await oracle.complete("You are an AI Task Optimization Engine."))
    assert answer["reorderedTasks"] == []


def test_bootstrap_picks_openrouter_unless_offline_requested(settings) -> None:
    assert isinstance(build_oracle(settings), OpenRouterOracle)
    settings.openrouter_api_key = "sk-test"
    assert isinstance(build_oracle(settings), OpenRouterOracle)

    settings.offline = True
    assert isinstance(build_oracle(settings), OfflineOracle)

    state = create_initial_state(settings=settings)
    assert isinstance(state.oracle, OfflineOracle)
    assert state.session is None
    assert state.service.store.count(SessionKey("Ops", "Infra")) == 0
    assert settings.db_path.exists()


@pytest.mark.asyncio
async def test_missing_key_surfaces_on_optimize_and_caches_nothing(settings) -> None:
    state = create_initial_state(settings=settings)
    key = SessionKey("Ops", "Infra")
    state.service.store.add(key, Task(id=1, title="rotate certs"))

    with pytest.raises(ConfigurationError):
        await state.service.optimize(key)

    assert state.service.cache.get(key) is None


def test_missing_key_is_reported_by_the_cli(settings) -> None:
    state = create_initial_state(settings=settings)
    state.session = SessionKey("Ops", "Infra")
    registry.handle(state, "/add rotate certs")

    reply = registry.handle(state, "/optimize")

    assert "API key is missing" in reply
    assert state.service.cache.get(state.session) is None


def test_extract_json_object() -> None:
    assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}
    assert extract_json_object('prefix {"a": {"b": 2}} suffix') == {"a": {"b": 2}}
    with pytest.raises(ParseError):
        extract_json_object("[]")
    with pytest.raises(ParseError):
        extract_json_object('{"a": 1,}')


def test_strip_markup() -> None:
    assert strip_markup("  **Bold** and `code` ") == "Bold and code"
    assert strip_markup(None) == ""
