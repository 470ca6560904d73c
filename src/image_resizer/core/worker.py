"""Per-item unit of work: resolve, transform, store, record."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Optional, Union

from .exceptions import ImageResizerError, ResolutionError
from .image_utils import content_type_for_format
from .models import FailureOutcome, FailurePhase, SuccessOutcome, TransformSpec
from .observability import LogContext, MetricsCollector, timed_phase
from .protocols import BlobStoreProtocol, DatasetProtocol, LoggerProtocol
from .resolver import SourceResolver
from .scheduler import CancellationToken
from .sources import ParsedSource
from .transformer import ImageTransformer

DEFAULT_TRANSFORM_TIMEOUT = 120.0
DEFAULT_STORE_TIMEOUT = 60.0

Outcome = Union[SuccessOutcome, FailureOutcome]


@dataclass(frozen=True)
class BatchItem:
    """One input of a batch: the descriptor as given and its parsed form."""

    descriptor: Any
    parsed: ParsedSource


class ItemCancelled(ImageResizerError):
    """Raised inside the worker when the batch was cancelled between phases."""


def storage_key(index: int) -> str:
    """Output key for an item; nanosecond time keeps same-millisecond keys apart."""
    return f"image_{index}_{time.time_ns()}"


class ItemWorker:
    """Processes one item and always returns an outcome, never raising.

    This is the failure boundary of the batch: resolver, transformer and
    sink errors are converted into a FailureOutcome tagged with the phase
    in which they happened.
    """

    def __init__(
        self,
        resolver: SourceResolver,
        transformer: ImageTransformer,
        store: BlobStoreProtocol,
        logger: LoggerProtocol,
        dataset: Optional[DatasetProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        transform_timeout: float = DEFAULT_TRANSFORM_TIMEOUT,
        store_timeout: float = DEFAULT_STORE_TIMEOUT,
        total: int = 0,
    ):
        self._resolver = resolver
        self._transformer = transformer
        self._store = store
        self._logger = logger
        self._dataset = dataset
        self._metrics_collector = metrics_collector
        self._transform_timeout = transform_timeout
        self._store_timeout = store_timeout
        self._total = total

    async def process(
        self,
        index: int,
        item: BatchItem,
        spec: TransformSpec,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Outcome:
        """Run one item through resolve → transform → store → dataset."""
        log_context = LogContext(
            correlation_id=f"img_{index}_{int(time.time() * 1000)}",
            operation="process_image",
            component="item_worker",
        ).bind(index=index, source=item.descriptor)

        self._logger.info(
            f"Processing image {index + 1}/{self._total or '?'}", log_context
        )

        phase = FailurePhase.RESOLVE
        try:
            if isinstance(item.parsed, ResolutionError):
                raise item.parsed

            self._check_cancelled(cancel_token)
            async with timed_phase("resolve", self._metrics_collector):
                image_bytes = await self._resolver.resolve(item.parsed)
            self._logger.debug(
                "Resolved source",
                log_context.for_operation("resolve"),
                size_bytes=len(image_bytes),
            )

            phase = FailurePhase.TRANSFORM
            self._check_cancelled(cancel_token)
            async with timed_phase("transform", self._metrics_collector):
                # Pillow work is CPU-bound; keep it off the event loop.
                result = await asyncio.wait_for(
                    asyncio.to_thread(self._transformer.transform, image_bytes, spec),
                    timeout=self._transform_timeout,
                )

            phase = FailurePhase.STORE
            self._check_cancelled(cancel_token)
            key = storage_key(index)
            content_type = content_type_for_format(result.metadata.format)
            async with timed_phase("store", self._metrics_collector):
                await asyncio.wait_for(
                    self._store.put(key, result.data, content_type),
                    timeout=self._store_timeout,
                )
                url = self._store.public_url(key)

            outcome = SuccessOutcome(
                index=index,
                source=item.descriptor,
                key=key,
                url=url,
                width=result.metadata.width,
                height=result.metadata.height,
                format=result.metadata.format,
                size_bytes=result.metadata.size_bytes,
            )

            if self._dataset is not None:
                phase = FailurePhase.DATASET
                self._check_cancelled(cancel_token)
                async with timed_phase("dataset", self._metrics_collector):
                    await self._dataset.append(outcome.model_dump(mode="json", by_alias=True))

            self._logger.info(
                f"Successfully processed image {index + 1}: {url}", log_context
            )
            return outcome

        except ItemCancelled:
            failure = FailureOutcome(
                index=index,
                source=item.descriptor,
                error=f"{FailurePhase.CANCELLED.value}: batch cancelled before {phase.value}",
                phase=FailurePhase.CANCELLED,
            )
            self._logger.warning("Item cancelled", log_context, phase=phase.value)
            return failure

        except Exception as e:
            failure = FailureOutcome(
                index=index,
                source=item.descriptor,
                error=f"{phase.value}: {self._describe(e, phase)}",
                phase=phase,
            )
            self._logger.error(
                f"Failed to process image {index + 1}: {failure.error}",
                log_context.for_operation(phase.value),
                exc_info=not isinstance(e, (ImageResizerError, asyncio.TimeoutError)),
            )
            if self._dataset is not None and phase != FailurePhase.DATASET:
                await self._append_failure(failure, log_context)
            return failure

    async def _append_failure(self, failure: FailureOutcome, log_context: LogContext) -> None:
        # The outcome is already a failure; a dataset error here is only logged.
        try:
            await self._dataset.append(failure.model_dump(mode="json", by_alias=True))
        except Exception as e:
            self._logger.warning(
                f"Could not append failure record to dataset: {e}",
                log_context.for_operation("dataset"),
            )

    def _describe(self, error: Exception, phase: FailurePhase) -> str:
        if isinstance(error, asyncio.TimeoutError):
            limit = (
                self._transform_timeout
                if phase == FailurePhase.TRANSFORM
                else self._store_timeout
            )
            return f"timed out after {limit:g}s"
        return str(error) or type(error).__name__

    @staticmethod
    def _check_cancelled(cancel_token: Optional[CancellationToken]) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            raise ItemCancelled("batch cancelled")
