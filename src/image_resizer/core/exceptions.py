"""Custom exceptions for the image resizer."""

from __future__ import annotations

from enum import Enum


class ImageResizerError(Exception):
    """Base exception for all image resizer errors."""


class ConfigurationError(ImageResizerError):
    """Error raised for invalid configuration options."""


class BatchInputError(ConfigurationError):
    """Error raised when the batch input itself is unusable.

    This is the only batch-fatal error: it is raised before any item is
    admitted, and no partial report is produced.
    """


class ResolutionErrorKind(str, Enum):
    """Reasons a source descriptor could not be turned into bytes."""

    INVALID_SOURCE = "invalid_source"
    UNSUPPORTED_SOURCE = "unsupported_source"
    MALFORMED_REFERENCE = "malformed_reference"
    NOT_FOUND = "not_found"
    UNSUPPORTED_VALUE_TYPE = "unsupported_value_type"
    FETCH_FAILED = "fetch_failed"


class ResolutionError(ImageResizerError):
    """Error raised when an image source cannot be resolved to bytes."""

    def __init__(self, kind: ResolutionErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail


class FetchError(ImageResizerError):
    """Error raised by the HTTP fetcher after retries are exhausted."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransformErrorKind(str, Enum):
    """Reasons an image could not be transformed."""

    UNSUPPORTED_FORMAT = "unsupported_format"
    CODEC_FAILURE = "codec_failure"


class TransformError(ImageResizerError):
    """Error raised when decoding, resizing or encoding an image fails."""

    def __init__(self, kind: TransformErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail


class StoreError(ImageResizerError):
    """Error raised for blob-store failures."""


class DatasetError(ImageResizerError):
    """Error raised when appending a record to the dataset fails."""
