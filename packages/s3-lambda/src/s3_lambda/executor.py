"""Bounded-concurrency task runner shared by all batch operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from s3_lambda.observability import log_event, progress_bar

logger = logging.getLogger(__name__)


class ConcurrentExecutor:
    """Runs one task per item with at most `concurrency` tasks in flight.

    Tasks start in item order. Completion order is unspecified unless the
    concurrency is 1, in which case task i+1 starts only after task i settled.

    The first failure stops dispatch: no new task starts once an error has
    been observed, tasks already running are allowed to finish, and the first
    error is then raised. Running tasks are never cancelled.
    """

    __slots__ = ("concurrency", "name", "show_progress")

    def __init__(
        self,
        concurrency: int | None = None,
        *,
        name: str = "batch",
        show_progress: bool = False,
    ) -> None:
        if concurrency is not None and concurrency < 1:
            msg = f"concurrency must be at least 1, got {concurrency}"
            raise ValueError(msg)
        self.concurrency = concurrency
        self.name = name
        self.show_progress = show_progress

    async def run[T](self, items: Sequence[T], task: Callable[[T], Awaitable[object]]) -> None:
        total = len(items)
        if total == 0:
            return

        width = total if self.concurrency is None else min(self.concurrency, total)
        next_index = 0
        completed = 0
        failure: Exception | None = None

        log_event(logger, f"{self.name} started", items=total, concurrency=width)

        with progress_bar(self.name, total, enabled=self.show_progress) as bar:

            async def worker() -> None:
                nonlocal next_index, completed, failure
                while failure is None and next_index < total:
                    item = items[next_index]
                    next_index += 1
                    try:
                        await task(item)
                    except Exception as e:
                        if failure is None:
                            failure = e
                            log_event(
                                logger,
                                f"{self.name} failed",
                                logging.WARNING,
                                error=type(e).__name__,
                                started=next_index,
                                completed=completed,
                            )
                        return
                    completed += 1
                    bar.update(1)

            await asyncio.gather(*(worker() for _ in range(width)))

        if failure is not None:
            raise failure
        log_event(logger, f"{self.name} finished", items=total)
