"""Bounded-concurrency map over async work."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    func: Callable[[T], Awaitable[R | None]],
    items: Iterable[T],
    limit: int = 4,
) -> list[R]:
    """Run ``func`` over ``items`` with at most ``limit`` calls in flight.

    Results keep the input order. An item whose call raises, or returns
    None, is logged and dropped; one failure never aborts the batch.
    """
    items = list(items)
    if not items:
        return []

    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(item: T) -> R | None:
        async with semaphore:
            return await func(item)

    results = await asyncio.gather(*[_run(item) for item in items], return_exceptions=True)

    kept: list[R] = []
    for item, result in zip(items, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning("Dropping %s: %s", item, result)
        elif result is not None:
            kept.append(result)
    return kept
