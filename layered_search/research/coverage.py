from __future__ import annotations

from typing import Awaitable, Callable, Iterable, Sequence

from loguru import logger
from pydantic import ValidationError

from layered_search.config import settings
from layered_search.models.interfaces import Source
from layered_search.models.schemas import CoverageReport, QueryAnalysis
from layered_search.research.query_analyzer import parse_json_object

GenerateFn = Callable[[str], Awaitable[str]]

# Lower-case trigger phrases; an aspect is covered when any appears in the corpus.
ASPECT_TRIGGERS: dict[str, tuple[str, ...]] = {
    "definition": ("とは", "定義", "意味", "is a", "refers to", "defined as", "definition"),
    "reason": ("理由", "なぜ", "because", "原因", "reason", "due to"),
    "method": ("方法", "やり方", "手順", "how to", "steps", "method"),
    "timing": ("いつ", "日時", "期間", "when", "date"),
    "location": ("場所", "どこ", "where", "location"),
    "person": ("誰", "人物", "who", "founder", "author"),
    "similarities": ("共通点", "同じ", "similar", "in common"),
    "differences": ("違い", "異なる", "difference", "differs", "unlike"),
    "pros_cons": ("メリット", "デメリット", "利点", "欠点", "pros", "cons", "advantage", "disadvantage"),
    "steps": ("ステップ", "手順", "順番", "step"),
    "requirements": ("必要", "要件", "require", "prerequisite"),
    "tips": ("コツ", "ヒント", "tip", "trick"),
    "implementation": ("実装", "コード", "implementation", "implement"),
    "examples": ("例", "サンプル", "example"),
    "best_practices": ("ベストプラクティス", "best practice", "recommended approach"),
    "reviews": ("レビュー", "評価", "口コミ", "review"),
    "recommendations": ("おすすめ", "推奨", "recommend"),
    "ratings": ("評点", "星", "rating", "score", "stars"),
    "latest_news": ("最新", "ニュース", "発表", "latest", "news", "announced"),
    "timeline": ("経緯", "年表", "timeline", "history"),
    "impact": ("影響", "効果", "impact", "effect"),
}

COVERAGE_PROMPT = """Evaluate how well the search results below cover the query, and identify missing information.

Query: "{query}"
Query intent: {intent}
Requested aspects: {aspects}

Current search results:
{sources}

Answer in JSON with exactly this shape:
{{
  "coverage": number between 0.0 and 1.0,
  "gaps": ["missing information 1", "missing information 2"],
  "subQueries": ["follow-up search query 1", "follow-up search query 2"]
}}

Return JSON only."""


def build_corpus(sources: Iterable[Source]) -> str:
    return " ".join(
        f"{s.title} {s.description or ''} {s.body_text or ''}" for s in sources
    ).lower()


def triggers_for(aspect: str) -> tuple[str, ...]:
    return ASPECT_TRIGGERS.get(aspect, (aspect.replace("_", " ").lower(),))


def aspect_coverage(aspects: Sequence[str], corpus: str) -> tuple[float, list[str]]:
    """Fraction of aspects covered by the corpus, plus the uncovered ones in order."""
    if not aspects:
        return settings.neutral_aspect_coverage, []
    gaps = [a for a in aspects if not any(t in corpus for t in triggers_for(a))]
    covered = len(aspects) - len(gaps)
    return covered / max(1, len(aspects)), gaps


def keyword_coverage(keywords: Sequence[str], corpus: str) -> float:
    matched = sum(1 for kw in keywords if kw.lower() in corpus)
    return matched / max(1, len(keywords))


def evaluate_coverage(
    aspects: Sequence[str],
    keywords: Sequence[str],
    sources: Iterable[Source],
) -> CoverageReport:
    """Heuristic coverage score in [0, 1] and the aspects still missing."""
    corpus = build_corpus(sources)
    aspect_score, gaps = aspect_coverage(aspects, corpus)
    keyword_score = keyword_coverage(keywords, corpus)
    coverage = settings.aspect_weight * aspect_score + settings.keyword_weight * keyword_score
    return CoverageReport(coverage=coverage, gaps=tuple(gaps))


def _summarize_sources(sources: Sequence[Source], limit: int = 6) -> str:
    lines = []
    for index, source in enumerate(sources[:limit], 1):
        snippet = (source.description or source.body_text or "")[:200]
        lines.append(f"[{index}] {source.title}: {snippet}")
    return "\n".join(lines) or "(none)"


async def evaluate_coverage_with_llm(
    query: str,
    sources: Sequence[Source],
    analysis: QueryAnalysis,
    generate: GenerateFn,
) -> CoverageReport:
    """LLM-backed coverage evaluation; falls back to the heuristic on any failure."""
    prompt = COVERAGE_PROMPT.format(
        query=query,
        intent=analysis.intent,
        aspects=", ".join(analysis.aspects) or "(none)",
        sources=_summarize_sources(sources),
    )
    try:
        response = await generate(prompt)
        return CoverageReport.model_validate(parse_json_object(response))
    except (ValueError, ValidationError) as exc:
        logger.warning(f"[Coverage] LLM evaluation unusable, falling back to heuristics: {exc}")
    except Exception as exc:
        logger.warning(f"[Coverage] LLM evaluation failed, falling back to heuristics: {exc}")

    # No sub_queries here: the orchestrator then generates them for the right layer.
    return evaluate_coverage(analysis.aspects, analysis.keywords, sources)
