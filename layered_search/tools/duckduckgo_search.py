"""Credential-free web search by scraping the DuckDuckGo HTML endpoint."""

from __future__ import annotations

from urllib.parse import parse_qs, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from layered_search.config import settings
from layered_search.exceptions import ProviderError
from layered_search.models.interfaces import WebResult
from layered_search.tools.http_retry import request_with_retry
from layered_search.tools.web_utils import browser_headers, is_valid_url

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html"


def clean_result_url(href: str) -> str:
    """Unwrap DuckDuckGo's /l/?uddg=<target> redirect links."""
    if "uddg=" not in href:
        return href
    try:
        absolute = urljoin("https://duckduckgo.com", href)
        target = parse_qs(urlparse(absolute).query).get("uddg")
    except ValueError:
        return href
    return target[0] if target else href


def parse_results(html: str, num_results: int) -> list[WebResult]:
    soup = BeautifulSoup(html, "html.parser")
    if soup.select_one(".anomaly-modal__modal") is not None:
        raise ProviderError("DuckDuckGo blocked the request (anti-bot challenge)")

    results: list[WebResult] = []
    seen: set[str] = set()
    for block in soup.select(".result.web-result"):
        link = block.select_one(".result__a")
        if link is None:
            continue
        raw_url = (link.get("href") or "").strip()
        title = link.get_text(strip=True)
        if not raw_url or not title:
            continue
        url = clean_result_url(raw_url)
        if not is_valid_url(url) or url in seen:
            continue
        seen.add(url)
        snippet = block.select_one(".result__snippet")
        results.append(
            WebResult(
                url=url,
                title=title,
                description=snippet.get_text(" ", strip=True) if snippet is not None else "",
            )
        )
        if len(results) >= num_results:
            break
    return results


async def search(
    query: str,
    *,
    num_results: int = 6,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[WebResult]:
    async with httpx.AsyncClient(
        timeout=settings.search_timeout_seconds,
        follow_redirects=True,
        transport=transport,
    ) as client:
        response = await request_with_retry(
            client,
            "GET",
            DUCKDUCKGO_HTML_URL,
            params={"q": query, "kp": "1", "kl": settings.search_region},
            headers=browser_headers(),
        )
    if not response.is_success:
        raise ProviderError(f"DuckDuckGo search failed: HTTP {response.status_code}")
    return parse_results(response.text, num_results)
