"""Core utilities and shared components for the image resizer."""

from .aggregator import ResultAggregator
from .exceptions import (
    BatchInputError,
    ConfigurationError,
    DatasetError,
    FetchError,
    ImageResizerError,
    ResolutionError,
    ResolutionErrorKind,
    StoreError,
    TransformError,
    TransformErrorKind,
)
from .logging_config import get_logger, setup_logger
from .models import (
    BatchReport,
    BatchRequest,
    BatchSummary,
    FailureOutcome,
    FailurePhase,
    Fit,
    ImageMetadata,
    OutputFormat,
    RuntimeSettings,
    SuccessOutcome,
    TransformResult,
    TransformSpec,
)
from .resolver import SourceResolver
from .scheduler import CancellationToken, ConcurrencyScheduler, clamp_concurrency
from .sources import ImageSource, RemoteURL, StoreRef, parse_source, parse_sources
from .transformer import ImageTransformer
from .worker import BatchItem, ItemWorker

__all__ = [
    "BatchRequest",
    "TransformSpec",
    "Fit",
    "OutputFormat",
    "FailurePhase",
    "ImageMetadata",
    "TransformResult",
    "SuccessOutcome",
    "FailureOutcome",
    "BatchSummary",
    "BatchReport",
    "RuntimeSettings",
    "ImageSource",
    "RemoteURL",
    "StoreRef",
    "parse_source",
    "parse_sources",
    "SourceResolver",
    "ImageTransformer",
    "BatchItem",
    "ItemWorker",
    "CancellationToken",
    "ConcurrencyScheduler",
    "clamp_concurrency",
    "ResultAggregator",
    "setup_logger",
    "get_logger",
    "ImageResizerError",
    "ConfigurationError",
    "BatchInputError",
    "ResolutionError",
    "ResolutionErrorKind",
    "FetchError",
    "TransformError",
    "TransformErrorKind",
    "StoreError",
    "DatasetError",
]
