"""Bounded-concurrency scheduling of batch items."""

import asyncio
import threading
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar, Union

from .models import FailureOutcome, SuccessOutcome

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 20

T = TypeVar("T")
Outcome = Union[SuccessOutcome, FailureOutcome]


def clamp_concurrency(value: int) -> int:
    """Clamp a requested concurrency to [MIN_CONCURRENCY, MAX_CONCURRENCY]."""
    return min(max(MIN_CONCURRENCY, value), MAX_CONCURRENCY)


class CancellationToken:
    """Cooperative cancellation flag for a running batch.

    Workers check it before starting each phase; a phase already in
    flight is never interrupted.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


ItemFn = Callable[[int, T, Optional[CancellationToken]], Awaitable[Outcome]]
OutcomeCallback = Callable[[Outcome], None]


class ConcurrencyScheduler:
    """Runs items through a worker with a hard ceiling on items in flight.

    A fixed pool of slots pulls items from a FIFO queue, so items are
    admitted strictly in input order and a slot admits the next item as
    soon as its current one settles. Completion order is unconstrained.
    """

    def __init__(self, concurrency: int):
        self.concurrency = clamp_concurrency(concurrency)
        self.in_flight = 0
        self.peak_in_flight = 0
        self.admission_order: List[int] = []

    async def run(
        self,
        items: Sequence[T],
        worker: ItemFn,
        on_outcome: Optional[OutcomeCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Outcome]:
        """
        Process every item exactly once.

        Args:
            items: Items in input order; an item's index is its position
            worker: Coroutine function ``(index, item, token) -> outcome``;
                it must return an outcome rather than raise
            on_outcome: Called with each outcome as it settles
            cancel_token: Passed through to the worker

        Returns:
            Outcomes in completion order
        """
        queue: "asyncio.Queue[Tuple[int, T]]" = asyncio.Queue()
        for index, item in enumerate(items):
            queue.put_nowait((index, item))

        outcomes: List[Outcome] = []

        async def slot() -> None:
            while True:
                try:
                    index, item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return

                self.admission_order.append(index)
                self.in_flight += 1
                self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
                try:
                    outcome = await worker(index, item, cancel_token)
                finally:
                    self.in_flight -= 1

                outcomes.append(outcome)
                if on_outcome is not None:
                    on_outcome(outcome)

        pool_size = min(self.concurrency, len(items))
        await asyncio.gather(*(slot() for _ in range(pool_size)))
        return outcomes
