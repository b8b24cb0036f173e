"""Bounded, order-preserving async fan-out."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from loguru import logger

T = TypeVar("T")
R = TypeVar("R")


class ConcurrencyLimiter:
    """
    Run an async worker over many items with at most ``max_concurrency`` in flight.

    Results come back in input order, not completion order. A worker that
    raises leaves ``None`` in its slot; the other items are unaffected and the
    call as a whole never fails because of a single item.
    """

    def __init__(self, max_concurrency: int):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency

    async def run(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
    ) -> list[R | None]:
        results: list[R | None] = [None] * len(items)
        pending: dict[asyncio.Task, int] = {}
        next_index = 0

        def _launch(index: int) -> None:
            task = asyncio.ensure_future(worker(items[index]))
            pending[task] = index

        try:
            while next_index < len(items) or pending:
                while next_index < len(items) and len(pending) < self.max_concurrency:
                    _launch(next_index)
                    next_index += 1

                done, _ = await asyncio.wait(pending.keys(), return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    index = pending.pop(task)
                    error = task.exception()
                    if error is not None:
                        logger.warning(f"Worker failed for item #{index}: {error!r}")
                        continue
                    results[index] = task.result()
        finally:
            # Only reached with pending work if the caller itself was cancelled
            for task in pending:
                task.cancel()

        return results


async def run_bounded(
    max_concurrency: int,
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
) -> list[R | None]:
    """Convenience wrapper around :meth:`ConcurrencyLimiter.run`."""
    return await ConcurrencyLimiter(max_concurrency).run(items, worker)
