"""Collection of per-item outcomes into a batch report."""

import threading
from typing import List, Union

from .models import BatchReport, BatchSummary, FailureOutcome, SuccessOutcome

Outcome = Union[SuccessOutcome, FailureOutcome]


class ResultAggregator:
    """Thread-safe accumulator of outcomes, finalized exactly once."""

    def __init__(self, total: int):
        self._total = total
        self._results: List[Outcome] = []
        self._succeeded = 0
        self._failed = 0
        self._finalized = False
        self._lock = threading.Lock()

    def record(self, outcome: Outcome) -> None:
        """Append an outcome in completion order and bump its counter."""
        with self._lock:
            if self._finalized:
                raise RuntimeError("Cannot record outcomes after the report was finalized")
            self._results.append(outcome)
            if isinstance(outcome, SuccessOutcome):
                self._succeeded += 1
            else:
                self._failed += 1

    def finalize(self) -> BatchReport:
        """
        Build the report once every item has settled.

        Raises:
            RuntimeError: If called twice, or before every item was recorded
        """
        with self._lock:
            if self._finalized:
                raise RuntimeError("Batch report was already finalized")
            if len(self._results) != self._total:
                raise RuntimeError(
                    f"Cannot finalize: {len(self._results)} of {self._total} items recorded"
                )
            self._finalized = True
            return BatchReport(
                results=list(self._results),
                summary=BatchSummary(
                    total=self._total,
                    succeeded=self._succeeded,
                    failed=self._failed,
                ),
            )
