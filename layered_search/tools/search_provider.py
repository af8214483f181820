from __future__ import annotations

import asyncio
from typing import Any, Awaitable

import httpx

from layered_search.config import settings
from layered_search.models.interfaces import SearchResponse
from layered_search.services.logger import log_retrieval_failure
from layered_search.tools import brave_search, duckduckgo_search


async def _empty() -> list[Any]:
    return []


def _settled(result: Any, provider: str, kind: str, query: str) -> list[Any]:
    if isinstance(result, BaseException):
        log_retrieval_failure(f"{provider}.{kind}", query, getattr(result, "kind", "error"), str(result))
        return []
    return result


def resolve_credential(credential: str | None) -> str:
    if credential is not None and credential.strip():
        return credential.strip()
    return settings.brave_api_key.strip()


async def search(
    query: str,
    *,
    num_results: int = 6,
    include_news: bool = True,
    include_images: bool = True,
    credential: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SearchResponse:
    """Run one query against Brave (with a credential) or DuckDuckGo (without).

    Never raises: a failing result type comes back as an empty list.
    """
    cleaned = " ".join((query or "").split())
    if not cleaned:
        return SearchResponse()

    api_key = resolve_credential(credential)
    num_results = max(int(num_results), 1)

    if api_key:
        calls: list[Awaitable[list[Any]]] = [
            brave_search.search_web(cleaned, api_key, num_results=num_results, transport=transport),
            brave_search.search_news(
                cleaned, api_key, num_results=settings.news_results_per_query, transport=transport
            )
            if include_news
            else _empty(),
            brave_search.search_images(
                cleaned, api_key, num_results=settings.image_results_per_query, transport=transport
            )
            if include_images
            else _empty(),
        ]
        web, news, images = await asyncio.gather(*calls, return_exceptions=True)
        return SearchResponse(
            web=_settled(web, "brave", "web", cleaned),
            news=_settled(news, "brave", "news", cleaned),
            images=_settled(images, "brave", "image", cleaned),
            provider="brave",
        )

    try:
        web = await duckduckgo_search.search(cleaned, num_results=num_results, transport=transport)
    except Exception as exc:
        web = _settled(exc, "duckduckgo", "web", cleaned)
    return SearchResponse(web=web, provider="duckduckgo")
