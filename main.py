"""
Command-line runner for the chat pipeline.

Runs one or more queries through the same pipeline the server uses and
prints what each would answer, followed by a short report:

    python main.py "16g septum ring" "sterile kit" "shipping time"
"""

import argparse
import asyncio
import logging
import time

from assistant import Assistant
from config import get_settings
from models import ChatResult, Product

logger = logging.getLogger(__name__)

DEFAULT_QUERIES = [
    "shipping time",
    "aftercare",
    "sterile septum ring",
    "piercing course",
    "piercing kit",
    "nose",
    "16g titanium septum ring",
]


async def run_query(assistant: Assistant, query: str) -> tuple[ChatResult, float]:
    t0 = time.monotonic()
    result = await assistant.respond(query)
    return result, time.monotonic() - t0


def _format_product(p: Product) -> str:
    stock = {True: "in stock", False: "OUT", None: "?"}[p.instock]
    price = p.price or "-"
    return f"{p.title[:60]:<60} {price:>9}  {stock:<8}  score={p.score:g}"


def print_result(result: ChatResult, elapsed: float) -> None:
    print(f"\n{'=' * 70}")
    print(f"  {result.query!r} -> {result.intent}  ({elapsed:.2f}s)")
    print(f"{'=' * 70}")
    if result.heading:
        print(f"  {result.heading}")
    if result.message:
        print(f"  {result.message}")
    for tip in result.tips:
        print(f"    - {tip}")

    for label, products in (
        ("Gallery", result.items),
        ("Top picks", result.top_picks),
        ("Requested (out of stock)", result.requested),
    ):
        if products:
            print(f"\n  {label} ({len(products)}):")
            for p in products:
                print(f"    {_format_product(p)}")

    if result.snippet:
        print(f"\n  From {result.snippet.title}: {result.snippet.snippet[:160]}...")
    if result.prompt:
        print(f"\n  {result.prompt}")
    for link in result.links:
        print(f"  -> {link.label}: {link.url}")


def print_report(results: list[tuple[str, ChatResult | BaseException, float]], wall_clock: float) -> None:
    print(f"\n{'=' * 70}")
    print("REPORT")
    print(f"{'=' * 70}")
    print(f"  {'Query':<32} {'Intent':<10} {'Items':>6} {'Picks':>6} {'Req':>4} {'Time':>7}")
    print(f"  {'-' * 68}")
    failures = 0
    for query, result, elapsed in results:
        if isinstance(result, BaseException):
            failures += 1
            print(f"  {query[:32]:<32} {'ERROR':<10} {type(result).__name__}")
            continue
        print(
            f"  {query[:32]:<32} {result.intent:<10} {len(result.items):>6} "
            f"{len(result.top_picks):>6} {len(result.requested):>4} {elapsed:>6.2f}s"
        )
    print(f"  {'-' * 68}")
    print(f"  Queries: {len(results)}  Failed: {failures}  Wall clock: {wall_clock:.2f}s")


async def main(queries: list[str], with_docs: bool) -> None:
    assistant = Assistant.from_settings(get_settings())
    try:
        if with_docs:
            await assistant.load_documents()

        t_wall_start = time.monotonic()
        outcomes = await asyncio.gather(*[run_query(assistant, q) for q in queries], return_exceptions=True)
        wall_clock = time.monotonic() - t_wall_start

        rows: list[tuple[str, ChatResult | BaseException, float]] = []
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Query {query!r} failed: {outcome}", exc_info=outcome)
                rows.append((query, outcome, 0.0))
            else:
                result, elapsed = outcome
                print_result(result, elapsed)
                rows.append((query, result, elapsed))

        print_report(rows, wall_clock)
    finally:
        await assistant.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run chat queries through the scraping pipeline.")
    parser.add_argument("queries", nargs="*", help="queries to answer (default: a built-in sample)")
    parser.add_argument("--docs", action="store_true", help="ingest informational pages first")
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main(args.queries or DEFAULT_QUERIES, args.docs))
