"""
Page math and batched streaming.

``stream_batches`` is a plain generator: the number of batches is fixed before
the first request, documents come out in batch order, and closing the
generator stops further batch requests.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TypeVar

from mailsearch.common.exceptions import EngineFailure, StreamFailure, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def total_pages(total: int, size: int) -> int:
    """ceil(total / size)."""
    if size <= 0:
        raise ValidationError("size must be > 0", field="size", rule="min")
    return math.ceil(total / size)


def batch_count(total: int, batch_size: int) -> int:
    """Number of batches a stream issues; at least one, even for zero hits."""
    if batch_size <= 0:
        raise ValidationError(
            "batch_size must be > 0", field="batch_size", rule="min"
        )
    return max(1, math.ceil(total / batch_size))


def page_offset(page: int, size: int) -> int:
    return page * size


def _fetch(fetch_batch: Callable[[int], list[T]], index: int) -> list[T]:
    try:
        return fetch_batch(index)
    except EngineFailure as e:
        raise StreamFailure(
            f"Stream batch failed for page {index}: {e.message}",
            error_code="STREAM_BATCH_FAILED",
            batch_index=index,
        ) from e


def stream_batches(
    fetch_batch: Callable[[int], list[T]],
    batches: int,
    prefetch: int = 0,
) -> Iterator[T]:
    """
    Yield items from ``fetch_batch(0) .. fetch_batch(batches - 1)`` in order.

    With ``prefetch > 0`` up to that many later batches are fetched on a
    thread pool while the current one is being consumed. Order is unchanged.
    A failing batch raises ``StreamFailure`` tagged with its index.
    """
    if prefetch <= 0:
        for index in range(batches):
            yield from _fetch(fetch_batch, index)
        return

    executor = ThreadPoolExecutor(
        max_workers=prefetch, thread_name_prefix="mailsearch-stream"
    )
    pending: deque[Future[list[T]]] = deque()
    next_index = 0
    try:
        while next_index < batches or pending:
            while next_index < batches and len(pending) <= prefetch:
                pending.append(executor.submit(_fetch, fetch_batch, next_index))
                next_index += 1
            yield from pending.popleft().result()
    finally:
        # Reached on exhaustion, failure, or the consumer closing the generator.
        for future in pending:
            future.cancel()
        executor.shutdown(wait=False, cancel_futures=True)
        if pending:
            logger.debug("Stream stopped with %d batch(es) outstanding", len(pending))
