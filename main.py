"""Layered Search - multi-layer web retrieval

Simple CLI for running search sessions.
"""

import argparse
import asyncio
import json
from functools import partial

from layered_search.config import settings
from layered_search.llm_client import generate_text
from layered_search.models.interfaces import SessionResult
from layered_search.research.content_selection import build_context
from layered_search.research.coverage import evaluate_coverage_with_llm
from layered_search.research.orchestrator import SessionOptions, run_session
from layered_search.research.query_analyzer import analyze_query_with_llm
from layered_search.services.logger import configure_logging


def build_options(args: argparse.Namespace) -> SessionOptions:
    options = SessionOptions(
        max_layers=args.max_layers,
        min_coverage=args.min_coverage,
        num_results_per_layer=args.num_results,
        scrape_content=not args.no_scrape,
    )
    if args.llm:
        options.query_analyzer_override = partial(analyze_query_with_llm, generate=generate_text)
        options.coverage_evaluator_override = partial(evaluate_coverage_with_llm, generate=generate_text)
    return options


def print_result(query: str, result: SessionResult) -> None:
    print(f"Search query: {query}")
    print("-" * 50)

    for layer in result.layers:
        print(f"\n[~] Layer {layer.layer}: {layer.query[:100]}")
        print(f"  [+] {len(layer.sources)} new sources, {len(layer.news)} new news items")
        print(f"  [+] Coverage: {layer.coverage:.2f}")
        if layer.gaps:
            print(f"  [-] Gaps: {', '.join(layer.gaps)}")

    print(f"\n[*] Session Complete!")
    print(f"   Searches: {result.total_searches}")
    print(f"   Final coverage: {result.final_coverage:.2f}")
    print(f"   Sources: {len(result.sources)}  News: {len(result.news)}  Images: {len(result.images)}")
    print(f"\n{'='*50}")
    print("SOURCES:")
    print(f"{'='*50}")
    for i, source in enumerate(result.sources, 1):
        print(f"  {i}. [L{source.layer}] {source.title[:80]}")
        print(f"     {source.url}")


async def run_search(
    query: str,
    options: SessionOptions,
    as_json: bool = False,
    show_context: bool = False,
) -> None:
    result = await run_session(query, options)
    if show_context:
        print(build_context(result.sources, query))
    elif as_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print_result(query, result)


def main():
    parser = argparse.ArgumentParser(description="Layered Search - multi-layer web retrieval")
    parser.add_argument("--query", "-q", required=True, help="Search query")
    parser.add_argument("--max-layers", type=int, default=settings.default_max_layers, help="Maximum number of layers")
    parser.add_argument(
        "--min-coverage", type=float, default=settings.default_min_coverage, help="Stop once coverage reaches this value"
    )
    parser.add_argument(
        "--num-results", type=int, default=settings.default_num_results, help="Web results per sub-query"
    )
    parser.add_argument("--no-scrape", action="store_true", help="Use provider snippets only")
    parser.add_argument("--llm", action="store_true", help="Use the LLM for query analysis and coverage")
    parser.add_argument("--json", action="store_true", help="Print the session result as JSON")
    parser.add_argument(
        "--context", action="store_true", help="Print the numbered source context an answer model would receive"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr")

    args = parser.parse_args()
    if args.verbose:
        configure_logging(level="DEBUG")

    try:
        options = build_options(args)
    except ValueError as exc:
        parser.error(str(exc))

    asyncio.run(run_search(args.query, options, args.json, args.context))


if __name__ == "__main__":
    main()
