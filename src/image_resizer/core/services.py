"""Batch orchestration service for the image resizer."""

import asyncio
import json
import time
from typing import Any, List, Mapping, Optional, Union

from .aggregator import ResultAggregator
from .error_handling import BatchOperationContextManager
from .models import BatchReport, BatchRequest, FailureOutcome, SuccessOutcome
from .observability import LogContext, MetricsCollector
from .protocols import BlobStoreProtocol, DatasetProtocol, LoggerProtocol
from .resolver import SourceResolver
from .scheduler import CancellationToken, ConcurrencyScheduler
from .sources import parse_sources
from .transformer import ImageTransformer
from .worker import (
    DEFAULT_STORE_TIMEOUT,
    DEFAULT_TRANSFORM_TIMEOUT,
    BatchItem,
    ItemWorker,
)

OUTPUT_KEY = "OUTPUT"


class BatchOrchestrator:
    """Main orchestrator: one call turns a batch request into a report."""

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
    ):
        self._resolver = resolver
        self._transformer = transformer
        self._store = store
        self._logger = logger
        self._dataset = dataset
        self._metrics_collector = metrics_collector
        self._transform_timeout = transform_timeout
        self._store_timeout = store_timeout

    async def process_batch(
        self,
        request: Union[BatchRequest, Mapping[str, Any]],
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchReport:
        """
        Process every image of a batch and report per-item outcomes.

        Args:
            request: A BatchRequest, or a raw input document to validate
            cancel_token: Optional token checked by workers between phases

        Returns:
            The finalized BatchReport

        Raises:
            BatchInputError: If the input is unusable; no item is processed
        """
        if not isinstance(request, BatchRequest):
            request = BatchRequest.parse_input(request)

        spec = request.transform_spec()
        items: List[BatchItem] = [
            BatchItem(descriptor=descriptor, parsed=parsed)
            for descriptor, parsed in zip(request.images, parse_sources(request.images))
        ]
        total = len(items)

        log_context = LogContext(
            operation="process_batch", component="batch_orchestrator"
        )
        self._logger.info(f"Starting image processing for {total} images", log_context)
        self._logger.info(
            f"Settings: width={spec.width}, height={spec.height}, fit={spec.fit.value}, "
            f"format={spec.output_format.value}, quality={spec.quality}",
            log_context,
        )

        worker = ItemWorker(
            resolver=self._resolver,
            transformer=self._transformer,
            store=self._store,
            logger=self._logger,
            dataset=self._dataset if request.create_dataset else None,
            metrics_collector=self._metrics_collector,
            transform_timeout=self._transform_timeout,
            store_timeout=self._store_timeout,
            total=total,
        )
        aggregator = ResultAggregator(total=total)
        scheduler = ConcurrencyScheduler(request.concurrency)

        start_time = time.time()
        with BatchOperationContextManager("image batch") as batch_errors:

            def on_outcome(outcome: Union[SuccessOutcome, FailureOutcome]) -> None:
                aggregator.record(outcome)
                if isinstance(outcome, FailureOutcome):
                    batch_errors.add_error(outcome.error, str(outcome.source))

            await scheduler.run(
                items,
                lambda index, item, token: worker.process(index, item, spec, token),
                on_outcome=on_outcome,
                cancel_token=cancel_token,
            )

        self._logger.debug("Admission order", log_context, order=scheduler.admission_order)

        report = aggregator.finalize()
        self._logger.info(
            f"Processing complete: {report.summary.succeeded} succeeded, "
            f"{report.summary.failed} failed out of {report.summary.total} total",
            log_context,
            concurrency=scheduler.concurrency,
            peak_in_flight=scheduler.peak_in_flight,
            duration_ms=round((time.time() - start_time) * 1000),
        )
        return report

    async def persist_report(self, report: BatchReport, key: str = OUTPUT_KEY) -> str:
        """Save the report as JSON in the output store and return its URL."""
        body = json.dumps(report.to_output()).encode("utf-8")
        await self._store.put(key, body, "application/json")
        self._logger.info(f"Results saved to {key} key in the output store")
        return self._store.public_url(key)

    def run(self, request: Union[BatchRequest, Mapping[str, Any]]) -> BatchReport:
        """
        Process a batch from synchronous code.

        This is the synchronous wrapper that runs the async orchestration.
        """
        return asyncio.run(self.process_batch(request))
