"""Observability utilities: context-aware log lines and per-phase timings."""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from .logging_config import get_logger


@dataclass(frozen=True)
class LogContext:
    """Correlation data attached to every line logged for one unit of work."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str = ""
    component: str = ""
    fields: Mapping[str, Any] = field(default_factory=dict)

    def for_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation)

    def bind(self, **fields: Any) -> "LogContext":
        return replace(self, fields={**self.fields, **fields})


def render(message: str, context: Optional[LogContext], fields: Mapping[str, Any]) -> str:
    """
    Format a log line as ``[operation] [correlation] message (k=v, ...)``.

    Context fields come first; call-site fields override them.
    """
    prefix = ""
    merged: Dict[str, Any] = dict(fields)
    if context is not None:
        merged = {**context.fields, **fields}
        prefix = f"[{context.correlation_id}] "
        if context.operation:
            prefix = f"[{context.operation}] {prefix}"

    line = f"{prefix}{message}"
    if merged:
        line += " (" + ", ".join(f"{k}={v}" for k, v in merged.items()) + ")"
    return line


class StructuredLogger:
    """LoggerProtocol implementation on top of the configured stdlib logger."""

    def __init__(self, name: str = "image-resizer"):
        self._logger = get_logger(name)

    def _emit(
        self,
        level: int,
        message: str,
        context: Optional[LogContext],
        exc_info: bool = False,
        **fields: Any,
    ) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, render(message, context, fields), exc_info=exc_info)

    def debug(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        self._emit(logging.DEBUG, message, context, **fields)

    def info(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        self._emit(logging.INFO, message, context, **fields)

    def warning(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        self._emit(logging.WARNING, message, context, **fields)

    def error(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        self._emit(logging.ERROR, message, context, **fields)


@dataclass(frozen=True)
class PhaseTiming:
    """Wall-clock time spent in one phase of one item."""

    phase: str
    started_at: float
    elapsed: float
    ok: bool
    error: Optional[str] = None

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000


@dataclass(frozen=True)
class PhaseSummary:
    """Aggregate timings of one phase over a batch."""

    count: int
    failures: int
    mean: float
    longest: float
    total: float


class MetricsCollector:
    """Accumulates PhaseTiming records for a batch run."""

    def __init__(self) -> None:
        self._timings: List[PhaseTiming] = []

    def record(self, timing: PhaseTiming) -> None:
        self._timings.append(timing)

    def timings(self, phase: Optional[str] = None) -> List[PhaseTiming]:
        """Recorded timings, optionally only those of one phase."""
        return [t for t in self._timings if phase is None or t.phase == phase]

    def phases(self) -> List[str]:
        """Phase names in the order they were first timed."""
        return list(dict.fromkeys(t.phase for t in self._timings))

    def summarize(self, phase: str) -> Optional[PhaseSummary]:
        """Summary of one phase, or None if it was never timed."""
        timings = self.timings(phase)
        if not timings:
            return None
        elapsed = [t.elapsed for t in timings]
        return PhaseSummary(
            count=len(timings),
            failures=sum(not t.ok for t in timings),
            mean=sum(elapsed) / len(elapsed),
            longest=max(elapsed),
            total=sum(elapsed),
        )


@asynccontextmanager
async def timed_phase(
    phase: str, metrics_collector: Optional[MetricsCollector] = None
) -> AsyncIterator[None]:
    """Time an async block and record it, whether it succeeds or raises."""
    started_at = time.time()
    start = time.perf_counter()
    error: Optional[str] = None
    ok = False
    try:
        yield
        ok = True
    except Exception as e:
        error = str(e) or type(e).__name__
        raise
    finally:
        if metrics_collector is not None:
            metrics_collector.record(
                PhaseTiming(
                    phase=phase,
                    started_at=started_at,
                    elapsed=time.perf_counter() - start,
                    ok=ok,
                    error=error,
                )
            )
