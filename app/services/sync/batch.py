"""
Batch runner.

Drives a processor coroutine over a list of work items in sequential
chunks with a pause between chunks. A failing item is logged and
recorded; it never stops the run.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)


class RunDeadline:
    """Overall wall-clock budget for one pipeline run (monotonic clock)."""

    def __init__(self, seconds: float | None, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._started_at = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started_at

    def remaining(self) -> float | None:
        if self.seconds is None:
            return None
        return max(0.0, self.seconds - self.elapsed)

    def exceeded(self) -> bool:
        return self.seconds is not None and self.elapsed >= self.seconds


@dataclass
class BatchFailure:
    item: Any
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"item": self.item, "error": self.error}


@dataclass
class BatchResult:
    processed: int = 0
    results: list[Any] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)
    deadline_exceeded: bool = False
    not_started: int = 0

    @property
    def succeeded(self) -> int:
        return self.processed - len(self.failures)


async def run_in_batches(
    items: Sequence[Any],
    batch_size: int,
    processor: Callable[[Any], Awaitable[Any]],
    pause_seconds: float = 0.0,
    deadline: RunDeadline | None = None,
    describe: Callable[[Any], Any] | None = None,
) -> BatchResult:
    """
    Process items one at a time in chunks of ``batch_size``.

    Args:
        items: Work items, processed in the given order
        batch_size: Items per chunk (>= 1)
        processor: Coroutine function called once per item
        pause_seconds: Sleep between chunks (not after the last one)
        deadline: Stop scheduling new items once exceeded
        describe: Maps an item to the value recorded in failures/logs

    Returns:
        BatchResult with per-item results and failures
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    items = list(items)
    describe = describe or (lambda item: item)
    result = BatchResult()
    total_batches = (len(items) + batch_size - 1) // batch_size

    for batch_index, offset in enumerate(range(0, len(items), batch_size)):
        chunk = items[offset:offset + batch_size]
        logger.debug(f"Batch {batch_index + 1}/{total_batches}: {len(chunk)} items")

        for position, item in enumerate(chunk):
            if deadline is not None and deadline.exceeded():
                result.deadline_exceeded = True
                result.not_started = len(items) - (offset + position)
                logger.warning(
                    f"Run deadline of {deadline.seconds}s exceeded, "
                    f"{result.not_started} items not started"
                )
                return result

            result.processed += 1
            try:
                result.results.append(await processor(item))
            except Exception as e:
                label = describe(item)
                logger.error(f"Batch item {label} failed: {e}")
                result.failures.append(BatchFailure(item=label, error=str(e)))

        if pause_seconds > 0 and batch_index < total_batches - 1:
            await asyncio.sleep(pause_seconds)

    return result
