from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable

from layered_search.models.interfaces import Source
from layered_search.models.schemas import QueryAnalysis

MAX_SUB_QUERIES = 3
ENCYCLOPEDIA_DOMAIN = "wikipedia.org"
COMPARISON_SPLIT_RE = re.compile(r"\s+vs\.?\s+|\s+versus\s+|と", re.IGNORECASE)


def comparison_sides(query: str) -> list[str]:
    """The two compared subjects of an "A vs B" / "AとB" query, if present."""
    parts = [p.strip(" ?？。.!") for p in COMPARISON_SPLIT_RE.split(query, maxsplit=1)]
    parts = [p for p in parts if p]
    return parts if len(parts) == 2 else []


def _intent_queries(original_query: str, analysis: QueryAnalysis, year: int) -> list[str]:
    keywords = analysis.keywords
    if analysis.intent == "comparison":
        return [f"{side} pros and cons" for side in comparison_sides(original_query)]
    if not keywords:
        return []
    head = keywords[0]
    if analysis.intent == "howto":
        return [f"{head} steps", f"{head} beginner guide"]
    if analysis.intent == "technical":
        return [f"{head} implementation example", f"{head} best practices"]
    if analysis.intent == "current_events":
        return [f"{head} latest news {year}"]
    return [f"{head} explained clearly"]


def _dedupe(queries: Iterable[str]) -> list[str]:
    deduped: list[str] = []
    seen: set[str] = set()
    for query in queries:
        q = " ".join(query.split())
        key = q.lower()
        if not q or key in seen:
            continue
        seen.add(key)
        deduped.append(q)
    return deduped


def generate_sub_queries(
    original_query: str,
    analysis: QueryAnalysis,
    sources: Iterable[Source],
    completed_layer: int,
    *,
    year: int | None = None,
) -> list[str]:
    """Follow-up queries for the layer after completed_layer (at most three).

    An empty list means nothing useful can be proposed.
    """
    keywords = analysis.keywords
    queries: list[str] = []

    if completed_layer == 1:
        current_year = year or datetime.now(timezone.utc).year
        # Intent-specific queries lead so both sides of a comparison survive truncation.
        queries.extend(_intent_queries(original_query, analysis, current_year))
        if len(keywords) >= 2:
            queries.append(f"{keywords[0]} {keywords[1]} details")
            queries.append(f"{keywords[0]} concrete examples")
    elif completed_layer == 2 and keywords:
        head = keywords[0]
        queries.append(f"{head} expert opinion")
        queries.append(f"{head} recent research")
        if not any(ENCYCLOPEDIA_DOMAIN in s.url for s in sources):
            queries.append(f"{head} site:{ENCYCLOPEDIA_DOMAIN}")

    return _dedupe(queries)[:MAX_SUB_QUERIES]
