"""Heuristic query understanding: intent, complexity, depth, aspects, keywords."""

from __future__ import annotations

import json
import re
from typing import Awaitable, Callable

from loguru import logger
from pydantic import ValidationError

from layered_search.models.schemas import QueryAnalysis, QueryComplexity, QueryIntent

GenerateFn = Callable[[str], Awaitable[str]]

# Evaluated in order; the first matching intent wins.
INTENT_RULES: tuple[tuple[QueryIntent, re.Pattern[str]], ...] = (
    (
        "comparison",
        re.compile(r"\bvs\.?(?=\s|$)|\bversus\b|\bdifferences?\b|\bcompar(?:e|ed|ing|ison)\b|比較|違い", re.IGNORECASE),
    ),
    (
        "howto",
        re.compile(r"\bhow\s+(?:to|do|does|can|should)\b|\bguide\b|\btutorial\b|方法|やり方", re.IGNORECASE),
    ),
    (
        "current_events",
        re.compile(r"(?<!\d)(?:19|20)\d{2}(?!\d)|\blatest\b|\bnews\b|最新|ニュース", re.IGNORECASE),
    ),
    (
        "opinion",
        re.compile(r"\breviews?\b|\brecommend(?:ed|ation|ations)?\b|レビュー|おすすめ|評価", re.IGNORECASE),
    ),
    (
        "technical",
        re.compile(r"\bimplement(?:ation|ing)?\b|\balgorithms?\b|\bcode\b|実装|コード|アルゴリズム", re.IGNORECASE),
    ),
)

CONNECTIVE_RE = re.compile(r"\band\b|\bor\b|,|、|および|または|と|や", re.IGNORECASE)
QUESTION_RE = re.compile(r"\bwhy\b|\bhow\b|\bwhat\b|なぜ|どのように|何が|どう", re.IGNORECASE)

# Query markers -> aspect, in insertion order.
ASPECT_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("definition", re.compile(r"\bwhat\b|とは|何", re.IGNORECASE)),
    ("reason", re.compile(r"\bwhy\b|なぜ|理由", re.IGNORECASE)),
    ("method", re.compile(r"\bhow\b|どのように|方法", re.IGNORECASE)),
    ("timing", re.compile(r"\bwhen\b|いつ|日時", re.IGNORECASE)),
    ("location", re.compile(r"\bwhere\b|どこ|場所", re.IGNORECASE)),
    ("person", re.compile(r"\bwho\b|誰", re.IGNORECASE)),
)

INTENT_ASPECTS: dict[str, tuple[str, ...]] = {
    "comparison": ("similarities", "differences", "pros_cons"),
    "howto": ("steps", "requirements", "tips"),
    "technical": ("implementation", "examples", "best_practices"),
    "opinion": ("reviews", "recommendations", "ratings"),
    "current_events": ("latest_news", "timeline", "impact"),
}

STOP_PHRASES = frozenset(
    {
        "について",
        "とは",
        "ですか",
        "ください",
        "ありますか",
        "the",
        "and",
        "for",
        "with",
        "about",
        "what",
        "why",
        "how",
        "when",
        "where",
        "who",
        "which",
        "does",
        "are",
        "versus",
        "between",
        "from",
        "into",
        "this",
        "that",
        "there",
        "their",
    }
)

TOKEN_SPLIT_RE = re.compile(r"[\s、。！？!?,.;:()\[\]{}\"'“”「」]+")
JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

ANALYSIS_PROMPT = """Analyze the following search query and answer in JSON.

Query: "{query}"

Answer with exactly this shape:
{{
  "intent": "factual" | "comparison" | "howto" | "opinion" | "current_events" | "technical" | "comprehensive",
  "complexity": "simple" | "medium" | "complex",
  "suggestedDepth": 1 | 2 | 3,
  "aspects": ["facets of information the query asks for"],
  "keywords": ["important keywords"]
}}

Return JSON only."""


def detect_intent(query: str) -> QueryIntent:
    for intent, pattern in INTENT_RULES:
        if pattern.search(query):
            return intent
    return "factual"


def detect_complexity(query: str) -> QueryComplexity:
    word_count = len(query.split())
    connectives = len(CONNECTIVE_RE.findall(query))
    has_question_marker = QUESTION_RE.search(query) is not None

    if word_count > 15 or connectives >= 2 or (has_question_marker and word_count > 8):
        return "complex"
    if word_count > 8 or connectives >= 2:
        return "medium"
    return "simple"


def suggest_depth(intent: QueryIntent, complexity: QueryComplexity) -> int:
    if complexity == "complex" or intent in ("comparison", "comprehensive"):
        return 3
    if complexity == "medium" or intent in ("technical", "howto"):
        return 2
    return 1


def detect_aspects(query: str, intent: QueryIntent) -> list[str]:
    aspects = [aspect for aspect, pattern in ASPECT_RULES if pattern.search(query)]
    aspects.extend(INTENT_ASPECTS.get(intent, ()))
    return list(dict.fromkeys(aspects))


def extract_keywords(query: str) -> list[str]:
    """Content words in query order; duplicates are kept."""
    return [
        token
        for token in TOKEN_SPLIT_RE.split(query)
        if len(token) > 2 and token.lower() not in STOP_PHRASES
    ]


def analyze_query(query: str) -> QueryAnalysis:
    """Deterministic analysis of a raw query string."""
    text = query or ""
    intent = detect_intent(text)
    complexity = detect_complexity(text)
    return QueryAnalysis(
        intent=intent,
        complexity=complexity,
        suggested_depth=suggest_depth(intent, complexity),
        aspects=tuple(detect_aspects(text, intent)),
        keywords=tuple(extract_keywords(text)),
    )


def parse_json_object(text: str) -> dict:
    match = JSON_OBJECT_RE.search(text or "")
    if not match:
        raise ValueError("No JSON object in model response")
    payload = json.loads(match.group(0))
    if not isinstance(payload, dict):
        raise ValueError("Model response is not a JSON object")
    return payload


async def analyze_query_with_llm(query: str, generate: GenerateFn) -> QueryAnalysis:
    """LLM-backed analysis; falls back to analyze_query on any failure."""
    try:
        response = await generate(ANALYSIS_PROMPT.format(query=query))
        return QueryAnalysis.model_validate(parse_json_object(response))
    except (ValueError, ValidationError) as exc:
        logger.warning(f"[QueryAnalyzer] LLM analysis unusable, falling back to heuristics: {exc}")
    except Exception as exc:
        logger.warning(f"[QueryAnalyzer] LLM analysis failed, falling back to heuristics: {exc}")
    return analyze_query(query)
