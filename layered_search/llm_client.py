"""OpenRouter text generation through the OpenAI-compatible SDK."""
from __future__ import annotations

import time
from typing import Any

from layered_search.config import settings
from layered_search.services.logger import log_llm_call


def _temperature_for_model(model: str) -> int:
    # Some OpenAI GPT-5-compatible gateways reject temperature=0.
    if "gpt-5" in (model or "").lower():
        return 1
    return 0


def get_client() -> Any:
    """Get OpenRouter client via OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(api_key=settings.openrouter_api_key, base_url=base_url)


def get_model() -> str:
    return settings.openrouter_model


_client: Any | None = None


def client() -> Any:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


async def generate_text(
    prompt: str,
    *,
    model: str | None = None,
    max_tokens: int = 800,
    caller: str = "layered_search",
) -> str:
    """Single-turn completion; returns the response text (may be empty).

    Errors from the SDK propagate after being logged; the LLM-backed analyzer
    and evaluator turn them into heuristic fallbacks.
    """
    model = model or get_model()
    started = time.monotonic()
    try:
        response = await client().chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=_temperature_for_model(model),
        )
    except Exception as exc:
        log_llm_call(
            model,
            caller,
            duration_ms=int((time.monotonic() - started) * 1000),
            status="error",
            error=str(exc),
        )
        raise

    usage = getattr(response, "usage", None)
    log_llm_call(
        model,
        caller,
        duration_ms=int((time.monotonic() - started) * 1000),
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
    )
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    return getattr(choices[0].message, "content", None) or ""
