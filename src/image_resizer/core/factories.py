"""Factory classes for creating configured service instances."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aioboto3

from ..clients.headers import BrowserHeaderGenerator
from ..clients.http import HttpxFetcher
from ..clients.s3 import S3BlobStore, S3Dataset
from .exceptions import ConfigurationError
from .models import RuntimeSettings
from .observability import MetricsCollector, StructuredLogger
from .protocols import (
    BlobStoreProtocol,
    DatasetProtocol,
    HeaderGeneratorProtocol,
    HttpFetcherProtocol,
    LoggerProtocol,
)
from .resolver import SourceResolver
from .services import BatchOrchestrator
from .transformer import ImageTransformer


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str = "image-resizer") -> LoggerProtocol:
        """Create a structured logger backed by the central logging config."""
        return StructuredLogger(name)


class ProcessingPipelineFactory:
    """Factory for creating the batch orchestrator from its collaborators."""

    @staticmethod
    def create_pipeline(
        store: BlobStoreProtocol,
        fetcher: HttpFetcherProtocol,
        dataset: Optional[DatasetProtocol] = None,
        header_generator: Optional[HeaderGeneratorProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        settings: Optional[RuntimeSettings] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> BatchOrchestrator:
        """Create a fully configured orchestrator."""
        settings = settings or RuntimeSettings()

        if header_generator is None:
            header_generator = BrowserHeaderGenerator()

        if logger is None:
            logger = LoggerFactory.create_logger("image-resizer.batch")

        resolver = SourceResolver(
            fetcher=fetcher,
            store=store,
            header_generator=header_generator,
            fetch_timeout=settings.fetch_timeout,
            fetch_retries=settings.fetch_retries,
        )

        return BatchOrchestrator(
            resolver=resolver,
            transformer=ImageTransformer(),
            store=store,
            logger=logger,
            dataset=dataset,
            metrics_collector=metrics_collector,
            transform_timeout=settings.transform_timeout,
            store_timeout=settings.store_timeout,
        )


@asynccontextmanager
async def open_s3_pipeline(
    settings: RuntimeSettings,
    output_store_id: Optional[str] = None,
    create_dataset: bool = True,
    logger: Optional[LoggerProtocol] = None,
    metrics_collector: Optional[MetricsCollector] = None,
) -> AsyncIterator[BatchOrchestrator]:
    """
    Open S3 and HTTP clients and yield an orchestrator wired to them.

    Raises:
        ConfigurationError: If no output bucket is configured
    """
    bucket = output_store_id or settings.output_bucket
    if not bucket:
        raise ConfigurationError(
            "No output store: pass outputStoreId or set IMAGE_RESIZER_OUTPUT_BUCKET"
        )

    session = aioboto3.Session(region_name=settings.region)
    async with session.client("s3", endpoint_url=settings.endpoint_url) as s3_client:  # type: ignore[reportUnknownMemberType]
        async with HttpxFetcher.create() as fetcher:
            store = S3BlobStore(
                s3_client,
                bucket,
                public_url_base=settings.public_url_base,
                region=settings.region,
            )
            dataset = None
            if create_dataset:
                dataset = S3Dataset(
                    s3_client,
                    settings.dataset_bucket or bucket,
                    prefix=settings.dataset_prefix,
                )
            yield ProcessingPipelineFactory.create_pipeline(
                store=store,
                fetcher=fetcher,
                dataset=dataset,
                logger=logger,
                settings=settings,
                metrics_collector=metrics_collector,
            )
