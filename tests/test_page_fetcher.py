from __future__ import annotations

import asyncio

import httpx
import pytest

from layered_search.models.interfaces import FetchFailure, PageData
from layered_search.tools.page_fetcher import (
    BrowserPageFetcher,
    HttpPageFetcher,
    get_page_fetcher,
)

HTML = (
    "<html><head><title>Fetched</title></head><body><article>"
    + "<p>" + "Readable article content. " * 10 + "</p>"
    + "</article></body></html>"
)


def _fetcher(handler) -> HttpPageFetcher:
    return HttpPageFetcher(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_returns_page_data_for_html():
    seen_headers: list[httpx.Headers] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_headers.append(request.headers)
        return httpx.Response(200, headers={"content-type": "text/html; charset=utf-8"}, content=HTML.encode())

    outcome = await _fetcher(handler).fetch("https://example.com/page")

    assert isinstance(outcome, PageData)
    assert outcome.title == "Fetched"
    assert "Readable article content." in outcome.body_text
    assert seen_headers[0]["user-agent"].startswith("Mozilla/5.0")


@pytest.mark.asyncio
async def test_non_success_status_is_provider_failure():
    outcome = await _fetcher(lambda request: httpx.Response(404, text="missing")).fetch(
        "https://example.com/missing"
    )

    assert isinstance(outcome, FetchFailure)
    assert outcome.kind == "provider"
    assert "404" in outcome.message


@pytest.mark.asyncio
async def test_non_html_content_type_is_parse_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "application/pdf"}, content=b"%PDF-1.7")

    outcome = await _fetcher(handler).fetch("https://example.com/file.pdf")

    assert isinstance(outcome, FetchFailure)
    assert outcome.kind == "parse"


@pytest.mark.asyncio
async def test_empty_page_is_parse_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-type": "text/html"},
            content=b"<html><body><script>1</script></body></html>",
        )

    outcome = await _fetcher(handler).fetch("https://example.com/blank")

    assert isinstance(outcome, FetchFailure)
    assert outcome.kind == "parse"


@pytest.mark.asyncio
async def test_connection_error_is_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = await _fetcher(handler).fetch("https://unreachable.example")

    assert isinstance(outcome, FetchFailure)
    assert outcome.kind == "network"


@pytest.mark.asyncio
async def test_slow_response_is_network_failure():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, headers={"content-type": "text/html"}, content=HTML.encode())

    outcome = await _fetcher(handler).fetch("https://slow.example", timeout_ms=50)

    assert isinstance(outcome, FetchFailure)
    assert outcome.kind == "network"


@pytest.mark.asyncio
async def test_oversized_body_is_truncated_and_still_parsed():
    body = "<html><body><p>" + "a" * 5000 + "</p></body></html>"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "text/html"}, content=body.encode())

    outcome = await _fetcher(handler).fetch("https://big.example", max_bytes=300)

    assert isinstance(outcome, PageData)
    assert 0 < len(outcome.body_text) < 300


def test_get_page_fetcher_selects_strategy():
    assert type(get_page_fetcher("http")) is HttpPageFetcher
    assert isinstance(get_page_fetcher("browser"), BrowserPageFetcher)
    with pytest.raises(ValueError):
        get_page_fetcher("carrier-pigeon")


@pytest.mark.asyncio
async def test_invalid_url_fails_without_request():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not run
        raise AssertionError("no request expected")

    outcome = await _fetcher(handler).fetch("mailto:someone@example.com")

    assert isinstance(outcome, FetchFailure)
    assert outcome.kind == "network"


@pytest.mark.asyncio
async def test_byte_cap_inside_multibyte_character_is_dropped_cleanly():
    body = "<html><body><p>" + "é" * 400 + "</p></body></html>"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-type": "text/html; charset=utf-8"},
            content=body.encode("utf-8"),
        )

    # 15 ASCII bytes of markup, then two bytes per character: 302 ends mid-character.
    outcome = await _fetcher(handler).fetch("https://accents.example", max_bytes=302)

    assert isinstance(outcome, PageData)
    assert "�" not in outcome.body_text
    assert outcome.body_text == "é" * 143
