from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from layered_search.exceptions import NetworkError
from layered_search.models.interfaces import (
    FetchFailure,
    ImageResult,
    NewsResult,
    PageData,
    SearchResponse,
    WebResult,
)
from layered_search.services.integrated_search import IntegratedSearch, fallback_document

BODY = "Scraped body text that is comfortably longer than fifty characters in total."


def _search_fn(web: list[WebResult], news=None, images=None) -> AsyncMock:
    return AsyncMock(
        return_value=SearchResponse(web=web, news=news or [], images=images or [], provider="brave")
    )


def _page(url: str, **overrides) -> PageData:
    fields = dict(url=url, title="Fetched title", body_text=BODY, body_markdown=f"# Fetched\n\n{BODY}")
    fields.update(overrides)
    return PageData(**fields)


class FakeFetcher:
    def __init__(self, outcomes: dict[str, object] | None = None, delay: float = 0.0, slow: dict[str, float] | None = None):
        self.outcomes = outcomes or {}
        self.delay = delay
        self.slow = slow or {}
        self.calls: list[str] = []
        self.active = 0
        self.peak = 0

    async def fetch(self, url: str, *, timeout_ms=None, max_bytes=None):
        self.calls.append(url)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.slow.get(url, self.delay))
        finally:
            self.active -= 1
        return self.outcomes.get(url, _page(url))


def test_fallback_document_shape():
    doc = fallback_document(WebResult(url="https://www.example.com/x", title="T", description="D"))

    assert doc.body_markdown == "# T\n\nD"
    assert doc.body_text == "D"
    assert doc.site_name == "example.com"
    assert doc.scraped is False


def test_fallback_document_without_description():
    doc = fallback_document(WebResult(url="https://example.com/x", title="T"))

    assert doc.body_markdown == "# T"
    assert doc.body_text == ""
    assert doc.description is None


@pytest.mark.asyncio
async def test_scraped_content_overrides_provider_fields():
    search_fn = _search_fn([WebResult(url="https://a.example/1", title="Provider title", description="snippet")])
    search = IntegratedSearch(search_fn=search_fn, fetcher=FakeFetcher())

    result = await search.run("query", num_results=3)

    doc = result.web[0]
    assert doc.scraped is True
    assert doc.title == "Fetched title"
    assert doc.body_text == BODY
    assert doc.description == "snippet"
    search_fn.assert_awaited_once_with(
        "query", num_results=3, include_news=True, include_images=True, credential=None
    )


@pytest.mark.asyncio
async def test_failed_or_thin_fetch_falls_back_without_dropping_results():
    web = [
        WebResult(url="https://a.example/fail", title="Fail", description="fail snippet"),
        WebResult(url="https://a.example/thin", title="Thin", description="thin snippet"),
        WebResult(url="https://a.example/ok", title="Ok", description="ok snippet"),
    ]
    fetcher = FakeFetcher(
        outcomes={
            "https://a.example/fail": FetchFailure(url="https://a.example/fail", error=NetworkError("down")),
            "https://a.example/thin": _page("https://a.example/thin", body_text="short", body_markdown="short"),
        }
    )
    search = IntegratedSearch(search_fn=_search_fn(web), fetcher=fetcher)

    result = await search.run("query")

    assert [d.url for d in result.web] == [w.url for w in web]
    assert result.web[0].body_markdown == "# Fail\n\nfail snippet"
    assert result.web[1].body_markdown == "# Thin\n\nthin snippet"
    assert result.web[2].scraped is True


@pytest.mark.asyncio
async def test_scrape_disabled_makes_no_fetches():
    fetcher = FakeFetcher()
    news = [NewsResult(url="https://news.example/1", title="N")]
    images = [ImageResult(url="https://img.example/p", title="I", image_url="https://img.example/i.jpg")]
    search = IntegratedSearch(
        search_fn=_search_fn([WebResult(url="https://a.example/1", title="T", description="D")], news, images),
        fetcher=fetcher,
    )

    result = await search.run("query", scrape_content=False)

    assert fetcher.calls == []
    assert result.web[0].body_markdown == "# T\n\nD"
    assert result.news == news
    assert result.images == images


@pytest.mark.asyncio
async def test_fetch_concurrency_is_bounded():
    web = [WebResult(url=f"https://a.example/{i}", title=str(i)) for i in range(6)]
    fetcher = FakeFetcher(delay=0.01)
    search = IntegratedSearch(search_fn=_search_fn(web), fetcher=fetcher, max_parallel=2)

    result = await search.run("query")

    assert fetcher.peak == 2
    assert len(fetcher.calls) == 6
    assert all(doc.scraped for doc in result.web)


@pytest.mark.asyncio
async def test_slow_page_times_out_alone():
    web = [
        WebResult(url="https://a.example/fast", title="Fast"),
        WebResult(url="https://a.example/slow", title="Slow", description="slow snippet"),
    ]
    fetcher = FakeFetcher(slow={"https://a.example/slow": 5.0})
    search = IntegratedSearch(search_fn=_search_fn(web), fetcher=fetcher, fetch_timeout_ms=50)

    result = await asyncio.wait_for(search.run("query"), timeout=2)

    assert result.web[0].scraped is True
    assert result.web[1].scraped is False
    assert result.web[1].body_markdown == "# Slow\n\nslow snippet"


@pytest.mark.asyncio
async def test_unexpected_fetcher_error_falls_back():
    fetcher = AsyncMock()
    fetcher.fetch.side_effect = RuntimeError("boom")
    search = IntegratedSearch(
        search_fn=_search_fn([WebResult(url="https://a.example/1", title="T", description="D")]),
        fetcher=fetcher,
    )

    result = await search.run("query")

    assert result.web[0].scraped is False


@pytest.mark.asyncio
async def test_site_name_prefers_page_then_provider_then_host():
    web = [
        WebResult(url="https://www.one.example/a", title="1", site_name="Provider One"),
        WebResult(url="https://www.two.example/b", title="2", site_name="Provider Two"),
        WebResult(url="https://www.three.example/c", title="3"),
    ]
    fetcher = FakeFetcher(
        outcomes={
            "https://www.one.example/a": _page("https://www.one.example/a", site_name="Page One"),
            "https://www.two.example/b": FetchFailure(url="https://www.two.example/b", error=NetworkError("x")),
            "https://www.three.example/c": FetchFailure(url="https://www.three.example/c", error=NetworkError("x")),
        }
    )
    search = IntegratedSearch(search_fn=_search_fn(web), fetcher=fetcher)

    result = await search.run("query")

    assert [d.site_name for d in result.web] == ["Page One", "Provider Two", "three.example"]
