"""Bounded fan-out of summarization tasks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]


@dataclass
class TaskOutcome(Generic[T]):
    """Result slot for one task: a value or the exception it raised."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ConcurrencyScheduler:
    """Run tasks concurrently behind a fixed-size permit pool.

    A task holds its permit for its whole run, retries and backoff
    included. Failures are recorded in the task's slot and never cancel
    sibling tasks.
    """

    def __init__(self, max_concurrent_requests: int = 1) -> None:
        if max_concurrent_requests < 1:
            raise ValueError("max_concurrent_requests must be at least 1")
        self.max_concurrent_requests = max_concurrent_requests

    async def run_all(self, tasks: Sequence[Task[T]]) -> list[TaskOutcome[T]]:
        """Run every task to completion.

        Args:
            tasks: Zero-argument coroutine factories

        Returns:
            One outcome per task, in input order
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_requests)
        outcomes: list[TaskOutcome[T]] = [TaskOutcome() for _ in tasks]

        async def run_one(index: int, task: Task[T]) -> None:
            async with semaphore:
                try:
                    outcomes[index].value = await task()
                except Exception as e:
                    logger.debug(f"Task {index} failed: {e}")
                    outcomes[index].error = e

        await asyncio.gather(*(run_one(i, task) for i, task in enumerate(tasks)))
        return outcomes
