"""Layered Search - iterative multi-layer web retrieval."""

from layered_search.models.interfaces import LayerResult, NewsItem, ImageItem, SessionResult, Source
from layered_search.models.schemas import CoverageReport, QueryAnalysis
from layered_search.research.orchestrator import MultiLayerOrchestrator, SessionOptions, run_session

__all__ = [
    "CoverageReport",
    "ImageItem",
    "LayerResult",
    "MultiLayerOrchestrator",
    "NewsItem",
    "QueryAnalysis",
    "SessionOptions",
    "SessionResult",
    "Source",
    "run_session",
]
