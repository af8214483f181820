from __future__ import annotations

import asyncio
from typing import Protocol

import httpx
from loguru import logger

from layered_search.config import settings
from layered_search.exceptions import LayeredSearchError, NetworkError, ParseError, ProviderError
from layered_search.models.interfaces import FetchFailure, PageData
from layered_search.services.logger import log_retrieval_failure
from layered_search.tools.page_parser import parse_page
from layered_search.tools.web_utils import browser_headers, is_valid_url

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

FetchOutcome = PageData | FetchFailure


class PageFetcher(Protocol):
    async def fetch(
        self,
        url: str,
        *,
        timeout_ms: int | None = None,
        max_bytes: int | None = None,
    ) -> FetchOutcome: ...


def _is_html(content_type: str) -> bool:
    lowered = content_type.lower()
    return any(kind in lowered for kind in HTML_CONTENT_TYPES)


def _decode(raw: bytes, encoding: str | None) -> str:
    # errors="ignore" drops a multi-byte character cut by max_bytes truncation
    try:
        return raw.decode(encoding or "utf-8", errors="ignore")
    except LookupError:
        return raw.decode("utf-8", errors="ignore")


class HttpPageFetcher:
    """Plain HTTP fetch strategy. One request per call, no internal retry."""

    def __init__(
        self,
        *,
        timeout_ms: int | None = None,
        max_bytes: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_ms = settings.fetch_timeout_ms if timeout_ms is None else timeout_ms
        self.max_bytes = settings.fetch_max_bytes if max_bytes is None else max_bytes
        self._transport = transport

    async def fetch(
        self,
        url: str,
        *,
        timeout_ms: int | None = None,
        max_bytes: int | None = None,
    ) -> FetchOutcome:
        timeout_seconds = max((timeout_ms or self.timeout_ms) / 1000.0, 0.001)
        limit = max(int(max_bytes or self.max_bytes), 1)
        if not is_valid_url(url):
            return self._failure(url, NetworkError("Invalid URL"))
        try:
            html = await asyncio.wait_for(
                self._download(url, timeout_seconds, limit),
                timeout=timeout_seconds,
            )
            return await asyncio.to_thread(parse_page, html, url)
        except asyncio.TimeoutError:
            return self._failure(url, NetworkError(f"Timed out after {timeout_seconds:.1f}s"))
        except LayeredSearchError as exc:
            return self._failure(url, exc)

    async def _download(self, url: str, timeout_seconds: float, limit: int) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=timeout_seconds,
                follow_redirects=True,
                headers=browser_headers(),
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise ProviderError(f"HTTP {response.status_code}")
                    content_type = response.headers.get("content-type", "")
                    if not _is_html(content_type):
                        raise ParseError(f"Unsupported content type: {content_type or 'unknown'}")

                    chunks: list[bytes] = []
                    size = 0
                    async for chunk in response.aiter_bytes():
                        remaining = limit - size
                        if len(chunk) >= remaining:
                            chunks.append(chunk[:remaining])
                            logger.debug(f"Truncated {url} at {limit} bytes")
                            break
                        chunks.append(chunk)
                        size += len(chunk)
                    return _decode(b"".join(chunks), response.charset_encoding)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

    @staticmethod
    def _failure(url: str, error: LayeredSearchError) -> FetchFailure:
        log_retrieval_failure("fetch", url, error.kind, str(error))
        return FetchFailure(url=url, error=error)


class BrowserPageFetcher(HttpPageFetcher):
    """Headless Chromium fetch strategy sharing the HTTP strategy's contract."""

    async def _download(self, url: str, timeout_seconds: float, limit: int) -> str:
        try:
            from playwright.async_api import async_playwright
        except Exception as exc:  # pragma: no cover - depends on optional package
            raise NetworkError("Playwright is not installed") from exc

        try:  # pragma: no cover - integration behavior
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(headless=True)
                try:
                    context = await browser.new_context(user_agent=browser_headers()["User-Agent"])
                    page = await context.new_page()
                    response = await page.goto(
                        url,
                        wait_until="domcontentloaded",
                        timeout=int(timeout_seconds * 1000),
                    )
                    if response is not None:
                        if not 200 <= response.status < 300:
                            raise ProviderError(f"HTTP {response.status}")
                        content_type = response.headers.get("content-type", "")
                        if content_type and not _is_html(content_type):
                            raise ParseError(f"Unsupported content type: {content_type}")
                    html = await page.content()
                finally:
                    await browser.close()
        except LayeredSearchError:
            raise
        except Exception as exc:  # pragma: no cover - integration behavior
            raise NetworkError(f"Browser fetch failed: {exc}") from exc

        return _decode(html.encode("utf-8")[:limit], "utf-8")


def get_page_fetcher(strategy: str | None = None) -> PageFetcher:
    """Build the configured fetch strategy (http | browser)."""
    selected = (strategy or settings.fetch_strategy).lower().strip()
    if selected == "browser":
        return BrowserPageFetcher()
    if selected == "http":
        return HttpPageFetcher()
    raise ValueError(f"Unsupported FETCH_STRATEGY: {selected}")
