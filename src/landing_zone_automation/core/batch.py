"""Batch fan-out for operations across many accounts and regions."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, List

from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of a batch run keyed by item."""

    results: Dict[Hashable, Any] = field(default_factory=dict)
    failures: Dict[Hashable, Exception] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failures


async def process_in_batches(
    items: Iterable[Hashable],
    worker: Callable[[Hashable], Awaitable[Any]],
    batch_size: int,
) -> BatchResult:
    """Run ``worker`` over ``items`` with bounded concurrency.

    Every call in a batch runs concurrently and the whole batch is
    awaited before the next one starts. A failing item is recorded in
    ``BatchResult.failures`` and does not stop its batch siblings.

    Args:
        items: Hashable work items, e.g. ``(account_id, region)`` tuples
        worker: Coroutine function processing one item
        batch_size: Maximum number of concurrent calls

    Returns:
        BatchResult with per-item results and failures

    Raises:
        InvalidInputError: When batch_size is below 1
    """
    if batch_size < 1:
        raise InvalidInputError(f"Batch size must be at least 1, got {batch_size}")

    pending: List[Hashable] = list(items)
    outcome = BatchResult()

    for start in range(0, len(pending), batch_size):
        batch = pending[start:start + batch_size]
        responses = await asyncio.gather(
            *(worker(item) for item in batch), return_exceptions=True
        )
        for item, response in zip(batch, responses):
            if isinstance(response, Exception):
                logger.warning(f"Batch item {item} failed: {response}")
                outcome.failures[item] = response
            elif isinstance(response, BaseException):
                raise response
            else:
                outcome.results[item] = response

    return outcome
