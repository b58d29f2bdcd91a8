# src/task_optimizer/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ..errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

_BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, openai.APIConnectionError):
        return True
    return exc.__class__.__name__ in {"Timeout", "ConnectTimeout", "ReadTimeout", "WriteTimeout"}


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible SDK uses NotFoundError for HTTP 404 (unknown / retired model)
    return isinstance(exc, openai.NotFoundError)


def _upstream_message(exc: Exception) -> str | None:
    """Provider-supplied error message, when the response body carries one."""
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        err = body.get("error", body)
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    msg = getattr(exc, "message", None)
    return str(msg) if msg else None


class OpenRouterOracle:
    """
    Oracle backed by an OpenRouter (OpenAI-compatible) chat completion endpoint.

    Behavior:
    - Tries models in the order from settings (TASKOPT_LLM_MODELS).
    - 404 (model not available) -> model parked for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    - Missing key / base URL -> ConfigurationError on first call, not at construction.
    """

    def __init__(self, settings: Any) -> None:
        self._settings = settings
        self._client: AsyncOpenAI | None = None
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    @property
    def configured(self) -> bool:
        return bool(str(getattr(self._settings, "openrouter_api_key", None) or "").strip())

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client

        s = self._settings
        api_key = getattr(s, "openrouter_api_key", None)
        base_url = getattr(s, "openrouter_base_url", "") or ""

        if not api_key or not str(api_key).strip():
            raise ConfigurationError(
                "OpenRouter API key is missing. Set TASKOPT_OPENROUTER_API_KEY in your .env."
            )
        if not base_url.strip():
            raise ConfigurationError(
                "OpenRouter base URL is missing. Set TASKOPT_OPENROUTER_BASE_URL in your .env."
            )

        connect_s = float(getattr(s, "llm_connect_timeout_seconds", 5.0))
        read_s = float(getattr(s, "llm_read_timeout_seconds", 120.0))

        # No SDK retries: model fallback is handled here.
        self._client = AsyncOpenAI(
            base_url=str(base_url),
            api_key=str(api_key),
            timeout=httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s),
            max_retries=0,
        )
        return self._client

    async def complete(self, prompt: str) -> str:
        s = self._settings
        models = [m.strip() for m in (getattr(s, "llm_models", []) or []) if m and m.strip()]
        if not models:
            raise ConfigurationError("Model list is empty. Set TASKOPT_LLM_MODELS in your .env.")

        client = self._get_client()
        headers: dict[str, str] = dict(getattr(s, "extra_headers", {}) or {})

        last_error: Exception | None = None
        now = time.monotonic()

        for model in models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("Oracle: calling model=%s", model)
            t0 = time.monotonic()
            try:
                resp = await client.chat.completions.create(
                    model=model,
                    temperature=float(getattr(s, "llm_temperature", 0.1)),
                    max_tokens=int(getattr(s, "llm_max_tokens", 4000)),
                    messages=[{"role": "user", "content": prompt}],
                    extra_headers=headers or None,
                )
            except openai.OpenAIError as e:
                last_error = e

                if _is_auth_error(e):
                    raise UpstreamError(
                        _upstream_message(e) or "OpenRouter authentication failed. Check your API key."
                    ) from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + _BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("Oracle: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("Oracle: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("Oracle: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("Oracle: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            try:
                content = resp.choices[0].message.content or ""
            except (AttributeError, IndexError):
                content = ""

            logger.info("Oracle: model=%s answered in %.2fs (%d chars)", model, time.monotonic() - t0, len(content))
            return content

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise UpstreamError("OpenRouter is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise UpstreamError("OpenRouter network/timeout error. Try again later.") from last_error
            raise UpstreamError(_upstream_message(last_error) or "OpenRouter API error") from last_error

        raise UpstreamError("No oracle model is currently available.")
