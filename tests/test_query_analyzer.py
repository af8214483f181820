from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from layered_search.models.schemas import QueryAnalysis
from layered_search.research.query_analyzer import (
    analyze_query,
    analyze_query_with_llm,
    detect_complexity,
    detect_intent,
    extract_keywords,
    parse_json_object,
)


@pytest.mark.parametrize(
    ("query", "intent"),
    [
        ("Apple vs Samsung", "comparison"),
        ("difference between tcp and udp", "comparison"),
        ("iPhoneとAndroidの違い", "comparison"),
        ("how to install python on windows", "howto"),
        ("kubernetes tutorial", "howto"),
        ("latest news on the election", "current_events"),
        ("world cup 2026 venues", "current_events"),
        ("2024年の選挙結果", "current_events"),
        ("error code 120245", "technical"),
        ("best laptop reviews", "opinion"),
        ("quicksort algorithm implementation", "technical"),
        ("Tokyo population", "factual"),
    ],
)
def test_detect_intent(query, intent):
    assert detect_intent(query) == intent


def test_intent_priority_prefers_comparison_over_howto():
    assert detect_intent("how to compare python versus go") == "comparison"


def test_detect_complexity_levels():
    assert detect_complexity("Tokyo population") == "simple"
    assert detect_complexity("one two three four five six seven eight nine") == "medium"
    assert detect_complexity("cats and dogs or birds") == "complex"
    assert detect_complexity("why do cats sleep so much during the whole day") == "complex"
    assert detect_complexity(" ".join(["word"] * 16)) == "complex"


def test_comparison_query_analysis():
    analysis = analyze_query("Apple vs Samsung")

    assert analysis.intent == "comparison"
    assert analysis.complexity == "simple"
    assert analysis.suggested_depth == 3
    assert analysis.aspects == ("similarities", "differences", "pros_cons")
    assert analysis.keywords == ("Apple", "Samsung")


def test_howto_query_merges_rule_and_intent_aspects():
    analysis = analyze_query("how to install python on windows")

    assert analysis.intent == "howto"
    assert analysis.suggested_depth == 2
    assert analysis.aspects == ("method", "steps", "requirements", "tips")
    assert analysis.keywords == ("install", "python", "windows")


def test_simple_factual_query_gets_depth_one():
    analysis = analyze_query("Tokyo population")

    assert analysis.intent == "factual"
    assert analysis.suggested_depth == 1
    assert analysis.aspects == ()


def test_japanese_markers_map_to_aspects():
    analysis = analyze_query("なぜ空は青いのか")

    assert "reason" in analysis.aspects


def test_keywords_keep_order_and_duplicates():
    assert extract_keywords("python python tutorial, an io guide") == ["python", "python", "tutorial", "guide"]


def test_empty_query_is_factual_without_keywords():
    analysis = analyze_query("")

    assert analysis == QueryAnalysis(intent="factual", complexity="simple", suggested_depth=1)


def test_parse_json_object_finds_embedded_object():
    assert parse_json_object('Sure!\n```json\n{"intent": "howto"}\n```') == {"intent": "howto"}
    with pytest.raises(ValueError):
        parse_json_object("no json here")


@pytest.mark.asyncio
async def test_llm_analysis_is_validated():
    generate = AsyncMock(
        return_value='{"intent": "comprehensive", "complexity": "complex", "suggestedDepth": 3, '
        '"aspects": ["history", "history", "impact"], "keywords": ["rome"]}'
    )

    analysis = await analyze_query_with_llm("fall of rome", generate)

    assert analysis.intent == "comprehensive"
    assert analysis.suggested_depth == 3
    assert analysis.aspects == ("history", "impact")
    assert "fall of rome" in generate.await_args.args[0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "behavior",
    [
        {"side_effect": RuntimeError("rate limited")},
        {"return_value": "I cannot answer that."},
        {"return_value": '{"intent": "poetry", "suggestedDepth": 9}'},
    ],
)
async def test_llm_analysis_falls_back_to_heuristics(behavior):
    generate = AsyncMock(**behavior)

    analysis = await analyze_query_with_llm("Apple vs Samsung", generate)

    assert analysis == analyze_query("Apple vs Samsung")
