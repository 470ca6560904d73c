"""Unit tests for the batch orchestrator and its factories."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from image_resizer.clients.headers import BrowserHeaderGenerator
from image_resizer.clients.s3 import S3BlobStore, S3Dataset
from image_resizer.core.exceptions import (
    ConfigurationError,
    ResolutionError,
    ResolutionErrorKind,
)
from image_resizer.core.factories import (
    LoggerFactory,
    ProcessingPipelineFactory,
    open_s3_pipeline,
)
from image_resizer.core.models import (
    BatchRequest,
    FailureOutcome,
    FailurePhase,
    RuntimeSettings,
    SuccessOutcome,
)
from image_resizer.core.observability import StructuredLogger
from image_resizer.core.resolver import SourceResolver
from image_resizer.core.services import OUTPUT_KEY, BatchOrchestrator
from image_resizer.core.transformer import ImageTransformer
from image_resizer.testing.fakes import (
    FakeBlobStore,
    FakeDataset,
    FakeLogger,
    create_test_image,
)


class TestBatchOrchestrator:
    """Tests for BatchOrchestrator with a mocked resolver."""

    def setup_method(self):
        self.resolver = Mock(spec=SourceResolver)
        self.resolver.resolve = AsyncMock(return_value=create_test_image(30, 30))
        self.store = FakeBlobStore()
        self.dataset = FakeDataset()
        self.logger = FakeLogger()

    def _orchestrator(self):
        return BatchOrchestrator(
            resolver=self.resolver,
            transformer=ImageTransformer(),
            store=self.store,
            logger=self.logger,
            dataset=self.dataset,
        )

    def test_accepts_parsed_request(self):
        request = BatchRequest(images=["http://x/a.png", "http://x/b.png"], format="png")

        report = asyncio.run(self._orchestrator().process_batch(request))

        assert report.summary.succeeded == 2
        assert all(isinstance(o, SuccessOutcome) for o in report.results)
        assert self.resolver.resolve.await_count == 2

    def test_unparseable_sources_never_reach_resolver(self):
        report = asyncio.run(
            self._orchestrator().process_batch({"images": ["ftp://bad", "key-value://nokey"]})
        )

        assert report.summary.failed == 2
        self.resolver.resolve.assert_not_awaited()

    def test_resolver_error_becomes_failure(self):
        self.resolver.resolve.side_effect = ResolutionError(
            ResolutionErrorKind.NOT_FOUND, 'Key "k" not found in store "s"'
        )

        report = asyncio.run(self._orchestrator().process_batch({"images": ["key-value://s/k"]}))

        (outcome,) = report.results
        assert isinstance(outcome, FailureOutcome)
        assert outcome.phase == FailurePhase.RESOLVE
        assert outcome.error == 'resolve: Key "k" not found in store "s"'

    def test_dataset_skipped_when_not_requested(self):
        asyncio.run(
            self._orchestrator().process_batch(
                {"images": ["http://x/a.png"], "createDataset": False}
            )
        )
        assert self.dataset.records == []

    def test_persist_report(self):
        orchestrator = self._orchestrator()
        report = asyncio.run(orchestrator.process_batch({"images": ["http://x/a.png"]}))

        url = asyncio.run(orchestrator.persist_report(report))

        assert url.endswith(f"/{OUTPUT_KEY}")
        assert self.store.written[OUTPUT_KEY].content_type == "application/json"


class TestProcessingPipelineFactory:
    """Tests for ProcessingPipelineFactory."""

    def test_default_collaborators(self):
        orchestrator = ProcessingPipelineFactory.create_pipeline(
            store=FakeBlobStore(), fetcher=Mock()
        )

        assert isinstance(orchestrator, BatchOrchestrator)
        assert isinstance(orchestrator._resolver._header_generator, BrowserHeaderGenerator)
        assert isinstance(orchestrator._logger, StructuredLogger)

    def test_settings_applied(self):
        settings = RuntimeSettings(fetch_timeout=7, fetch_retries=4, transform_timeout=9)

        orchestrator = ProcessingPipelineFactory.create_pipeline(
            store=FakeBlobStore(), fetcher=Mock(), logger=FakeLogger(), settings=settings
        )

        assert orchestrator._resolver._fetch_timeout == 7
        assert orchestrator._resolver._fetch_retries == 4
        assert orchestrator._transform_timeout == 9

    def test_logger_factory(self):
        assert isinstance(LoggerFactory.create_logger("image-resizer.test"), StructuredLogger)


class TestOpenS3Pipeline:
    """Tests for open_s3_pipeline."""

    def test_requires_output_bucket(self):
        async def run():
            async with open_s3_pipeline(RuntimeSettings()):
                pass

        with pytest.raises(ConfigurationError, match="No output store"):
            asyncio.run(run())

    @pytest.mark.parametrize("create_dataset", [True, False])
    def test_wires_s3_clients(self, create_dataset):
        s3_client = Mock()
        client_cm = MagicMock()
        client_cm.__aenter__ = AsyncMock(return_value=s3_client)
        client_cm.__aexit__ = AsyncMock(return_value=False)
        session = Mock()
        session.client.return_value = client_cm
        settings = RuntimeSettings(
            output_bucket="env-bucket",
            dataset_bucket="data-bucket",
            endpoint_url="http://localhost:4566",
            region="eu-west-1",
        )

        async def run():
            async with open_s3_pipeline(
                settings, output_store_id="results", create_dataset=create_dataset
            ) as pipeline:
                return pipeline

        with patch(
            "image_resizer.core.factories.aioboto3.Session", return_value=session
        ) as mock_session:
            pipeline = asyncio.run(run())

        mock_session.assert_called_once_with(region_name="eu-west-1")
        session.client.assert_called_once_with("s3", endpoint_url="http://localhost:4566")
        assert isinstance(pipeline._store, S3BlobStore)
        assert pipeline._store._bucket == "results"
        if create_dataset:
            assert isinstance(pipeline._dataset, S3Dataset)
        else:
            assert pipeline._dataset is None
