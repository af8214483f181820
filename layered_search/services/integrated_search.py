"""Search + scrape composition for a single query."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from layered_search.config import settings
from layered_search.models.interfaces import (
    IntegratedSearchResult,
    PageData,
    SearchResponse,
    WebDocument,
    WebResult,
)
from layered_search.tools import search_provider
from layered_search.tools.page_fetcher import PageFetcher, get_page_fetcher
from layered_search.tools.web_utils import site_name_from_url

SearchFn = Callable[..., Awaitable[SearchResponse]]


def fallback_document(result: WebResult) -> WebDocument:
    """Document built from provider data alone, used when scraping is skipped or too thin."""
    description = result.description or ""
    markdown = f"# {result.title}\n\n{description}" if description else f"# {result.title}"
    return WebDocument(
        url=result.url,
        title=result.title,
        description=description or None,
        body_text=description,
        body_markdown=markdown,
        site_name=result.site_name or site_name_from_url(result.url),
        scraped=False,
    )


def merge_document(result: WebResult, page: PageData | None, *, min_chars: int) -> WebDocument:
    """Prefer fetched page data when it carries at least min_chars of content."""
    if page is None:
        return fallback_document(result)
    has_content = len(page.body_text or "") >= min_chars or len(page.body_markdown or "") >= min_chars
    if not has_content:
        return fallback_document(result)
    return WebDocument(
        url=result.url,
        title=page.title or result.title,
        description=page.description or result.description or None,
        body_text=page.body_text,
        body_markdown=page.body_markdown,
        favicon=page.favicon,
        preview_image=page.preview_image,
        site_name=page.site_name or result.site_name or site_name_from_url(result.url),
        scraped=True,
    )


class IntegratedSearch:
    """Runs one query through the search provider, then fetches every web result."""

    def __init__(
        self,
        *,
        search_fn: SearchFn | None = None,
        fetcher: PageFetcher | None = None,
        max_parallel: int | None = None,
        fetch_timeout_ms: int | None = None,
        min_scraped_chars: int | None = None,
    ):
        self._search = search_fn or search_provider.search
        self._fetcher = fetcher
        self.max_parallel = max(int(max_parallel or settings.scrape_max_parallel), 1)
        self.fetch_timeout_ms = fetch_timeout_ms or settings.fetch_timeout_ms
        self.min_scraped_chars = (
            settings.min_scraped_chars if min_scraped_chars is None else min_scraped_chars
        )

    @property
    def fetcher(self) -> PageFetcher:
        if self._fetcher is None:
            self._fetcher = get_page_fetcher()
        return self._fetcher

    async def run(
        self,
        query: str,
        *,
        num_results: int = 6,
        include_news: bool = True,
        include_images: bool = True,
        scrape_content: bool = True,
        credential: str | None = None,
    ) -> IntegratedSearchResult:
        response = await self._search(
            query,
            num_results=num_results,
            include_news=include_news,
            include_images=include_images,
            credential=credential,
        )

        if scrape_content and response.web:
            pages = await self._fetch_all([r.url for r in response.web])
            web = [
                merge_document(result, page, min_chars=self.min_scraped_chars)
                for result, page in zip(response.web, pages)
            ]
            self._log_summary(web)
        else:
            web = [fallback_document(result) for result in response.web]

        return IntegratedSearchResult(
            web=web,
            news=list(response.news),
            images=list(response.images),
        )

    async def _fetch_all(self, urls: list[str]) -> list[PageData | None]:
        """Fetch every URL with bounded concurrency; results keep input order."""
        semaphore = asyncio.Semaphore(self.max_parallel)
        timeout_seconds = self.fetch_timeout_ms / 1000.0

        async def fetch_one(url: str) -> PageData | None:
            async with semaphore:
                try:
                    outcome = await asyncio.wait_for(
                        self.fetcher.fetch(url, timeout_ms=self.fetch_timeout_ms),
                        timeout=timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    logger.warning(f"[Scrape] Timed out after {timeout_seconds:.1f}s: {url}")
                    return None
            return outcome if isinstance(outcome, PageData) else None

        settled = await asyncio.gather(*(fetch_one(url) for url in urls), return_exceptions=True)
        pages: list[PageData | None] = []
        for url, item in zip(urls, settled):
            if isinstance(item, BaseException):
                logger.warning(f"[Scrape] Unexpected error for {url}: {item}")
                pages.append(None)
            else:
                pages.append(item)
        return pages

    @staticmethod
    def _log_summary(documents: list[WebDocument]) -> None:
        for doc in documents:
            chars = len(doc.body_markdown or "") if doc.scraped else 0
            suffix = "" if doc.scraped else " (using description fallback)"
            logger.debug(f"[Scrape] {site_name_from_url(doc.url)}: {chars} chars{suffix}")
