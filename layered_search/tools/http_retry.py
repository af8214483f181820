from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from layered_search.config import settings
from layered_search.exceptions import NetworkError

RETRYABLE_STATUS_CODES = frozenset({429, 503})


def backoff_delay(attempt: int, *, base_delay: float, max_delay: float) -> float:
    """Exponential backoff for the given 1-based attempt number."""
    return min(max(base_delay, 0.0) * (2 ** (attempt - 1)), max_delay)


def _retry_after_seconds(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After", "").strip()
    if not raw:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return None


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retry_max: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, retrying rate limits and transport errors with backoff.

    The last response is returned as-is once the attempt ceiling is reached,
    so callers still decide how to treat a final 429. Transport errors on the
    final attempt are raised as NetworkError.
    """
    retries = settings.search_retry_max if retry_max is None else retry_max
    base = settings.search_retry_base_delay if base_delay is None else base_delay
    cap = settings.search_retry_max_delay if max_delay is None else max_delay
    max_attempts = max(int(retries), 0) + 1

    for attempt in range(1, max_attempts + 1):
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            if attempt >= max_attempts:
                raise NetworkError(f"{method} {url} failed: {exc}") from exc
            delay = backoff_delay(attempt, base_delay=base, max_delay=cap)
            logger.debug(f"Transport error on {url} (attempt {attempt}), retrying in {delay:.2f}s: {exc}")
            await asyncio.sleep(delay)
            continue

        if response.status_code not in RETRYABLE_STATUS_CODES or attempt >= max_attempts:
            return response

        delay = backoff_delay(attempt, base_delay=base, max_delay=cap)
        retry_after = _retry_after_seconds(response)
        if retry_after is not None:
            delay = min(retry_after, cap)
        logger.debug(f"HTTP {response.status_code} from {url} (attempt {attempt}), retrying in {delay:.2f}s")
        await asyncio.sleep(delay)

    raise NetworkError(f"{method} {url} exhausted retries")  # pragma: no cover
