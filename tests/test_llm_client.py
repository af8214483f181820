from __future__ import annotations

import argparse
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from layered_search import llm_client
from layered_search.config import settings


def _fake_client(response=None, error: Exception | None = None) -> MagicMock:
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(return_value=response, side_effect=error)
    return fake


@pytest.mark.asyncio
async def test_generate_text_returns_message_content(monkeypatch):
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content='{"ok": true}'))])
    fake = _fake_client(response)
    monkeypatch.setattr(llm_client, "_client", fake)
    monkeypatch.setattr(settings, "openrouter_model", "openai/gpt-4o-mini")

    text = await llm_client.generate_text("prompt body", max_tokens=50)

    assert text == '{"ok": true}'
    kwargs = fake.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "openai/gpt-4o-mini"
    assert kwargs["messages"] == [{"role": "user", "content": "prompt body"}]
    assert kwargs["max_tokens"] == 50
    assert kwargs["temperature"] == 0


@pytest.mark.asyncio
async def test_generate_text_handles_empty_choices(monkeypatch):
    monkeypatch.setattr(llm_client, "_client", _fake_client(SimpleNamespace(choices=[])))

    assert await llm_client.generate_text("prompt") == ""


@pytest.mark.asyncio
async def test_generate_text_logs_and_reraises(monkeypatch):
    monkeypatch.setattr(llm_client, "_client", _fake_client(error=RuntimeError("quota")))

    with patch("layered_search.llm_client.log_llm_call") as log_call:
        with pytest.raises(RuntimeError):
            await llm_client.generate_text("prompt", model="openai/gpt-5-mini")

    assert log_call.call_args.kwargs["status"] == "error"
    assert log_call.call_args.kwargs["error"] == "quota"


def test_gpt5_models_use_default_temperature():
    assert llm_client._temperature_for_model("openai/gpt-5") == 1
    assert llm_client._temperature_for_model("anthropic/claude-3.5-haiku") == 0


def test_cli_wires_llm_overrides():
    import main

    args = argparse.Namespace(max_layers=3, min_coverage=0.5, num_results=2, no_scrape=True, llm=True)

    options = main.build_options(args)

    assert options.max_layers == 3
    assert options.scrape_content is False
    assert options.query_analyzer_override.keywords["generate"] is llm_client.generate_text
    assert options.coverage_evaluator_override.keywords["generate"] is llm_client.generate_text


def test_cli_rejects_invalid_options():
    import main

    args = argparse.Namespace(max_layers=0, min_coverage=0.5, num_results=2, no_scrape=False, llm=False)

    with pytest.raises(ValueError):
        main.build_options(args)
