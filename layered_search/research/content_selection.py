"""Pick the parts of a scraped page worth handing to an answer model."""

from __future__ import annotations

import re
from typing import Sequence

from rank_bm25 import BM25Okapi

from layered_search.models.interfaces import Source

INTRO_PARAGRAPHS = 2
ELLIPSIS = "..."
PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
WORD_RE = re.compile(r"\w+")


def _tokenize(text: str) -> list[str]:
    return WORD_RE.findall(text.lower())


def _bm25_scores(query_terms: list[str], paragraphs: list[str]) -> list[float]:
    tokenized = [_tokenize(p) for p in paragraphs]
    if not query_terms or not any(tokenized):
        return [0.0] * len(paragraphs)
    bm25 = BM25Okapi(tokenized)
    return [float(s) for s in bm25.get_scores(query_terms)]


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


def select_relevant_content(content: str, query: str, max_length: int = 2000) -> str:
    """
    Reduce content to at most max_length characters.

    The first paragraphs are always kept; the remaining budget goes to the
    paragraphs that mention query terms, ranked by term hits then BM25 score,
    and re-emitted in document order.
    """
    if not content:
        return ""
    if len(content) <= max_length:
        return content

    paragraphs = [p.strip() for p in PARAGRAPH_SPLIT_RE.split(content) if p.strip()]
    intro = paragraphs[:INTRO_PARAGRAPHS]
    rest = paragraphs[INTRO_PARAGRAPHS:]

    terms = [t for t in query.lower().split() if t]
    bm25 = _bm25_scores(_tokenize(query), rest)
    ranked: list[tuple[int, float, int]] = []
    for index, paragraph in enumerate(rest):
        lowered = paragraph.lower()
        hits = sum(1 for term in terms if term in lowered)
        if hits or bm25[index] > 0:
            ranked.append((hits, bm25[index], index))
    ranked.sort(key=lambda item: (-item[0], -item[1], item[2]))

    budget = max_length - sum(len(p) + 2 for p in intro)
    chosen: list[int] = []
    for _, _, index in ranked:
        cost = len(rest[index]) + 2
        if cost > budget:
            continue
        chosen.append(index)
        budget -= cost

    selected = intro + [rest[i] for i in sorted(chosen)]
    return _truncate("\n\n".join(selected), max_length)


def build_context(
    sources: Sequence[Source],
    query: str,
    max_chars_per_source: int = 2000,
) -> str:
    """Numbered context blocks, one per source."""
    blocks = []
    for index, source in enumerate(sources, 1):
        content = source.body_markdown or source.body_text or source.description or ""
        relevant = select_relevant_content(content, query, max_chars_per_source)
        blocks.append(f"[{index}] {source.title}\nURL: {source.url}\n{relevant}")
    return "\n\n---\n\n".join(blocks)
