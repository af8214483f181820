"""Multi-layer retrieval loop.

Analyze the query once, run a wide first search, then keep adding layers of
targeted sub-queries until coverage is good enough, the depth budget is spent,
or no useful sub-query can be proposed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Sequence
from uuid import uuid4

from loguru import logger

from layered_search.config import settings
from layered_search.models.interfaces import (
    ImageItem,
    IntegratedSearchResult,
    LayerResult,
    NewsItem,
    SessionResult,
    Source,
)
from layered_search.models.schemas import CoverageReport, QueryAnalysis
from layered_search.research.coverage import evaluate_coverage
from layered_search.research.query_analyzer import analyze_query
from layered_search.research.sub_queries import MAX_SUB_QUERIES, generate_sub_queries
from layered_search.services.integrated_search import IntegratedSearch
from layered_search.services.logger import log_session_step
from layered_search.tools.web_utils import normalize_url

QueryAnalyzerOverride = Callable[[str], Awaitable[Any]]
CoverageEvaluatorOverride = Callable[[str, Sequence[Source], QueryAnalysis], Awaitable[Any]]


@dataclass
class SessionOptions:
    max_layers: int = field(default_factory=lambda: settings.default_max_layers)
    min_coverage: float = field(default_factory=lambda: settings.default_min_coverage)
    num_results_per_layer: int = field(default_factory=lambda: settings.default_num_results)
    search_credential: str | None = None
    scrape_content: bool = True
    query_analyzer_override: QueryAnalyzerOverride | None = None
    coverage_evaluator_override: CoverageEvaluatorOverride | None = None

    def __post_init__(self) -> None:
        if int(self.max_layers) < 1:
            raise ValueError("max_layers must be >= 1")
        if not 0.0 <= float(self.min_coverage) <= 1.0:
            raise ValueError("min_coverage must be within [0, 1]")
        if int(self.num_results_per_layer) < 1:
            raise ValueError("num_results_per_layer must be >= 1")


@dataclass
class SessionState:
    """Running source/news sets of one session. First occurrence of a URL wins."""

    sources: list[Source] = field(default_factory=list)
    news: list[NewsItem] = field(default_factory=list)
    _source_keys: set[str] = field(default_factory=set)
    _news_keys: set[str] = field(default_factory=set)

    def add_sources(self, candidates: Iterable[Source]) -> list[Source]:
        added: list[Source] = []
        for source in candidates:
            key = normalize_url(source.url)
            if key in self._source_keys:
                continue
            self._source_keys.add(key)
            self.sources.append(source)
            added.append(source)
        return added

    def add_news(self, candidates: Iterable[NewsItem]) -> list[NewsItem]:
        added: list[NewsItem] = []
        for item in candidates:
            key = normalize_url(item.url)
            if key in self._news_keys:
                continue
            self._news_keys.add(key)
            self.news.append(item)
            added.append(item)
        return added


class MultiLayerOrchestrator:
    """Drives analysis, layered searching, merging and coverage evaluation."""

    def __init__(
        self,
        *,
        search: IntegratedSearch | None = None,
        max_parallel_searches: int | None = None,
    ):
        self.search = search or IntegratedSearch()
        self.max_parallel_searches = max(int(max_parallel_searches or settings.search_max_parallel), 1)

    async def run_session(self, query: str, options: SessionOptions | None = None) -> SessionResult:
        options = options or SessionOptions()
        session_id = uuid4().hex[:12]
        state = SessionState()

        analysis = await self._analyze(query, options)
        target_depth = min(analysis.suggested_depth, options.max_layers)
        log_session_step(
            session_id,
            "analysis",
            "completed",
            {**analysis.model_dump(), "target_depth": target_depth},
        )

        try:
            first = await self.search.run(
                query,
                num_results=options.num_results_per_layer + 2,
                include_news=True,
                include_images=True,
                scrape_content=options.scrape_content,
                credential=options.search_credential,
            )
        except Exception as exc:
            logger.warning(f"[MultiLayer] Initial search failed: {query!r}: {exc}")
            first = IntegratedSearchResult()
        total_searches = 1
        images = tuple(ImageItem.from_result(item) for item in first.images)
        added_sources, added_news = self._merge(state, [first], layer=1)

        report = await self._evaluate(query, state.sources, analysis, options)
        layers = [self._layer_result(1, query, added_sources, added_news, report)]
        self._log_layer(session_id, layers[-1])

        layer_num = 2
        while True:
            if report.coverage >= options.min_coverage:
                logger.info(f"[MultiLayer] Coverage {report.coverage:.2f} sufficient, stopping at layer {layer_num - 1}")
                break
            if layer_num > target_depth:
                logger.info(f"[MultiLayer] Target depth {target_depth} reached")
                break

            sub_queries = self._next_queries(query, analysis, state.sources, layer_num - 1, report)
            if not sub_queries:
                logger.info("[MultiLayer] No sub-queries generated, stopping")
                break

            results = await self._search_layer(sub_queries, layer_num, options)
            total_searches += len(sub_queries)
            added_sources, added_news = self._merge(state, results, layer=layer_num)

            report = await self._evaluate(query, state.sources, analysis, options)
            layers.append(
                self._layer_result(layer_num, " | ".join(sub_queries), added_sources, added_news, report)
            )
            self._log_layer(session_id, layers[-1])
            layer_num += 1

        result = SessionResult(
            layers=tuple(layers),
            sources=tuple(state.sources),
            news=tuple(state.news),
            images=images,
            total_searches=total_searches,
            final_coverage=report.coverage,
        )
        log_session_step(
            session_id,
            "session",
            "completed",
            {
                "layers": len(result.layers),
                "sources": len(result.sources),
                "total_searches": result.total_searches,
                "final_coverage": round(result.final_coverage, 4),
            },
        )
        return result

    async def _analyze(self, query: str, options: SessionOptions) -> QueryAnalysis:
        override = options.query_analyzer_override
        if override is not None:
            try:
                raw = await override(query)
                return raw if isinstance(raw, QueryAnalysis) else QueryAnalysis.model_validate(raw)
            except Exception as exc:
                logger.warning(f"[MultiLayer] Query analyzer override failed, using heuristics: {exc}")
        return analyze_query(query)

    async def _evaluate(
        self,
        query: str,
        sources: Sequence[Source],
        analysis: QueryAnalysis,
        options: SessionOptions,
    ) -> CoverageReport:
        override = options.coverage_evaluator_override
        if override is not None:
            try:
                raw = await override(query, list(sources), analysis)
                return raw if isinstance(raw, CoverageReport) else CoverageReport.model_validate(raw)
            except Exception as exc:
                logger.warning(f"[MultiLayer] Coverage evaluator override failed, using heuristics: {exc}")
        return evaluate_coverage(analysis.aspects, analysis.keywords, sources)

    @staticmethod
    def _next_queries(
        query: str,
        analysis: QueryAnalysis,
        sources: Sequence[Source],
        completed_layer: int,
        report: CoverageReport,
    ) -> list[str]:
        if report.sub_queries:
            proposed = list(dict.fromkeys(q.strip() for q in report.sub_queries if q and q.strip()))
            return proposed[:MAX_SUB_QUERIES]
        return generate_sub_queries(query, analysis, sources, completed_layer)

    async def _search_layer(
        self,
        sub_queries: list[str],
        layer_num: int,
        options: SessionOptions,
    ) -> list[IntegratedSearchResult]:
        """Run every sub-query concurrently; results keep submission order."""
        semaphore = asyncio.Semaphore(self.max_parallel_searches)
        logger.info(f"[MultiLayer] Layer {layer_num}: sub-queries {sub_queries}")

        async def run_one(sub_query: str) -> IntegratedSearchResult:
            async with semaphore:
                return await self.search.run(
                    sub_query,
                    num_results=options.num_results_per_layer,
                    include_news=layer_num == 2,
                    include_images=False,
                    scrape_content=options.scrape_content,
                    credential=options.search_credential,
                )

        settled = await asyncio.gather(*(run_one(q) for q in sub_queries), return_exceptions=True)
        results: list[IntegratedSearchResult] = []
        for sub_query, item in zip(sub_queries, settled):
            if isinstance(item, BaseException):
                logger.warning(f"[MultiLayer] Sub-query failed: {sub_query!r}: {item}")
                results.append(IntegratedSearchResult())
            else:
                results.append(item)
        return results

    @staticmethod
    def _merge(
        state: SessionState,
        results: Sequence[IntegratedSearchResult],
        *,
        layer: int,
    ) -> tuple[list[Source], list[NewsItem]]:
        added_sources = state.add_sources(
            Source.from_document(doc, layer) for result in results for doc in result.web
        )
        added_news = state.add_news(
            NewsItem.from_result(item, layer) for result in results for item in result.news
        )
        return added_sources, added_news

    @staticmethod
    def _layer_result(
        layer: int,
        query: str,
        sources: list[Source],
        news: list[NewsItem],
        report: CoverageReport,
    ) -> LayerResult:
        return LayerResult(
            layer=layer,
            query=query,
            sources=tuple(sources),
            news=tuple(news),
            coverage=report.coverage,
            gaps=tuple(report.gaps),
        )

    @staticmethod
    def _log_layer(session_id: str, layer: LayerResult) -> None:
        log_session_step(
            session_id,
            "layer",
            "completed",
            {
                "layer": layer.layer,
                "query": layer.query,
                "new_sources": len(layer.sources),
                "new_news": len(layer.news),
                "coverage": round(layer.coverage, 4),
                "gaps": list(layer.gaps),
            },
        )


async def run_session(query: str, options: SessionOptions | None = None) -> SessionResult:
    """Run one stateless multi-layer search session with default collaborators."""
    return await MultiLayerOrchestrator().run_session(query, options)
