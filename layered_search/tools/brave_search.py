from __future__ import annotations

from typing import Any

import httpx

from layered_search.config import settings
from layered_search.exceptions import ProviderError
from layered_search.models.interfaces import ImageResult, NewsResult, WebResult
from layered_search.tools.http_retry import request_with_retry
from layered_search.tools.web_utils import strip_tags

BRAVE_WEB_URL = "https://api.search.brave.com/res/v1/web/search"
BRAVE_NEWS_URL = "https://api.search.brave.com/res/v1/news/search"
BRAVE_IMAGES_URL = "https://api.search.brave.com/res/v1/images/search"


async def _get_json(
    endpoint: str,
    query: str,
    count: int,
    api_key: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    if not api_key:
        raise ProviderError("BRAVE_API_KEY is not configured")

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds, transport=transport) as client:
        response = await request_with_retry(
            client,
            "GET",
            endpoint,
            params={"q": query, "count": count},
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": api_key,
            },
        )
    if not response.is_success:
        raise ProviderError(f"Brave returned HTTP {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderError("Brave returned a malformed payload") from exc
    if not isinstance(payload, dict):
        raise ProviderError("Brave returned a malformed payload")
    return payload


def _thumbnail(item: dict[str, Any]) -> str | None:
    thumbnail = item.get("thumbnail")
    if isinstance(thumbnail, dict):
        return thumbnail.get("src") or None
    return None


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


async def search_web(
    query: str,
    api_key: str,
    *,
    num_results: int = 6,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[WebResult]:
    """Execute a Brave web search and normalize results."""
    payload = await _get_json(BRAVE_WEB_URL, query, num_results, api_key, transport)
    results: list[WebResult] = []
    for item in (payload.get("web") or {}).get("results", []) or []:
        url = item.get("url")
        if not url:
            continue
        snippets = item.get("extra_snippets", []) or []
        description = strip_tags(item.get("description", "") or "") or strip_tags(" ".join(snippets))
        profile = item.get("profile") if isinstance(item.get("profile"), dict) else {}
        results.append(
            WebResult(
                url=url,
                title=strip_tags(item.get("title", "") or ""),
                description=description,
                site_name=profile.get("name") or None,
            )
        )
    return results[:num_results]


async def search_news(
    query: str,
    api_key: str,
    *,
    num_results: int = 5,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[NewsResult]:
    payload = await _get_json(BRAVE_NEWS_URL, query, num_results, api_key, transport)
    results: list[NewsResult] = []
    for item in payload.get("results", []) or []:
        url = item.get("url")
        if not url:
            continue
        meta_url = item.get("meta_url") if isinstance(item.get("meta_url"), dict) else {}
        source = item.get("source") or meta_url.get("hostname")
        results.append(
            NewsResult(
                url=url,
                title=strip_tags(item.get("title", "") or ""),
                description=strip_tags(item.get("description", "") or ""),
                source=source or None,
                date=item.get("age") or item.get("page_age"),
                image_url=_thumbnail(item),
            )
        )
    return results[:num_results]


async def search_images(
    query: str,
    api_key: str,
    *,
    num_results: int = 6,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ImageResult]:
    payload = await _get_json(BRAVE_IMAGES_URL, query, num_results, api_key, transport)
    results: list[ImageResult] = []
    for item in payload.get("results", []) or []:
        url = item.get("url")
        if not url:
            continue
        properties = item.get("properties") if isinstance(item.get("properties"), dict) else {}
        results.append(
            ImageResult(
                url=url,
                title=item.get("title") or "Untitled",
                image_url=_thumbnail(item) or properties.get("url") or url,
                source=item.get("source"),
                width=_int_or_none(item.get("width", properties.get("width"))),
                height=_int_or_none(item.get("height", properties.get("height"))),
            )
        )
    return results[:num_results]
