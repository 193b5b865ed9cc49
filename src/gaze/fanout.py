from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

SPLIT_COLUMN_CONCURRENCY = 10
HACKER_NEWS_CONCURRENCY = 30

Task = Callable[[], Awaitable[Any]]
OnError = Callable[[int, Exception], Any]


@dataclass(frozen=True)
class TaskResult:
    index: int
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fan_out(
    tasks: Sequence[Task],
    concurrency: int,
    on_error: OnError | None = None,
) -> list[TaskResult]:
    """Run ``tasks`` with at most ``concurrency`` in flight.

    Slots are refilled as soon as a task finishes. A task that raises turns
    into a ``TaskResult`` with ``error`` set (and ``value`` from ``on_error``
    when given) without disturbing the others. Results come back in input
    order, one per task.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    if not tasks:
        return []

    sem = asyncio.Semaphore(concurrency)

    async def run(index: int, task: Task) -> TaskResult:
        async with sem:
            try:
                return TaskResult(index=index, value=await task())
            except Exception as e:
                logger.debug("Task %d failed: %s", index, e)
                value = on_error(index, e) if on_error is not None else None
                return TaskResult(index=index, value=value, error=str(e) or type(e).__name__)

    results = await asyncio.gather(*(run(i, t) for i, t in enumerate(tasks)))
    return sorted(results, key=lambda r: r.index)
