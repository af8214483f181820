from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

QueryIntent = Literal[
    "factual",
    "comparison",
    "howto",
    "opinion",
    "current_events",
    "technical",
    "comprehensive",
]
QueryComplexity = Literal["simple", "medium", "complex"]


class QueryAnalysis(BaseModel):
    """Immutable snapshot of one query's intent, depth, aspects and keywords."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    intent: QueryIntent = "factual"
    complexity: QueryComplexity = "simple"
    suggested_depth: Literal[1, 2, 3] = Field(default=1, alias="suggestedDepth")
    aspects: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()

    @field_validator("aspects")
    @classmethod
    def _unique_aspects(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(a.strip() for a in value if a and a.strip()))

    @field_validator("keywords")
    @classmethod
    def _strip_keywords(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(k.strip() for k in value if k and k.strip())


class CoverageReport(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    coverage: float = 0.0
    gaps: tuple[str, ...] = ()
    sub_queries: tuple[str, ...] = Field(default=(), alias="subQueries")

    @field_validator("coverage")
    @classmethod
    def _clamp_coverage(cls, value: float) -> float:
        return max(0.0, min(float(value), 1.0))
