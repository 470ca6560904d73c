"""Shared data models for the image resizer."""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import BatchInputError, ConfigurationError
from .image_utils import parse_background, resolve_position

DEFAULT_CONCURRENCY = 5


class Fit(str, Enum):
    """How an image is fitted into the requested box."""

    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"
    INSIDE = "inside"
    OUTSIDE = "outside"


class OutputFormat(str, Enum):
    """Encoding applied to every output image of a batch."""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"
    GIF = "gif"
    ORIGINAL = "original"


class FailurePhase(str, Enum):
    """Phase of the per-item pipeline in which a failure happened."""

    RESOLVE = "resolve"
    TRANSFORM = "transform"
    STORE = "store"
    DATASET = "dataset"
    CANCELLED = "cancelled"


def _unset_zero(value: Optional[int]) -> Optional[int]:
    return value or None


def _check_position(value: str) -> str:
    resolve_position(value)
    return value.strip().lower()


def _check_background(value: str) -> str:
    parse_background(value)
    return value


# 0 means "not set", as in the JSON input documents.
Dimension = Annotated[int, Field(ge=0), AfterValidator(_unset_zero)]
Position = Annotated[str, AfterValidator(_check_position)]
Background = Annotated[str, AfterValidator(_check_background)]


class TransformSpec(BaseModel):
    """Transformation rules shared read-only by every item of a batch."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    width: Optional[Dimension] = None
    height: Optional[Dimension] = None
    fit: Fit = Fit.COVER
    position: Position = "center"
    output_format: OutputFormat = Field(default=OutputFormat.WEBP, alias="format")
    quality: int = Field(default=80, ge=1, le=100)
    background: Background = "#ffffff"
    strip_metadata: bool = True

    @property
    def resize_requested(self) -> bool:
        return bool(self.width or self.height)


class BatchRequest(BaseModel):
    """Input of one batch invocation.

    Accepts both snake_case names and the camelCase keys used by JSON input
    documents (``stripMetadata``, ``outputStoreId``, ``createDataset``).
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    images: List[Any] = Field(min_length=1)
    width: Optional[Dimension] = None
    height: Optional[Dimension] = None
    fit: Fit = Fit.COVER
    position: Position = "center"
    output_format: OutputFormat = Field(default=OutputFormat.WEBP, alias="format")
    quality: int = Field(default=80, ge=1, le=100)
    background: Background = "#ffffff"
    strip_metadata: bool = True
    concurrency: int = DEFAULT_CONCURRENCY
    output_store_id: Optional[str] = None
    create_dataset: bool = True

    @classmethod
    def parse_input(cls, data: Any) -> "BatchRequest":
        """Validate a raw input document, failing the whole batch if unusable."""
        if not isinstance(data, dict):
            raise BatchInputError("Batch input must be a JSON object")
        images = data.get("images")
        if not isinstance(images, list) or not images:
            raise BatchInputError(
                'Input field "images" must be a non-empty array of image sources'
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise BatchInputError(f"Invalid batch input: {e}") from e

    def transform_spec(self) -> TransformSpec:
        """Build the immutable transform rules for this batch."""
        return TransformSpec(
            width=self.width,
            height=self.height,
            fit=self.fit,
            position=self.position,
            output_format=self.output_format,
            quality=self.quality,
            background=self.background,
            strip_metadata=self.strip_metadata,
        )


class ImageMetadata(BaseModel):
    """Properties of an encoded output image, as observed after encoding."""

    width: int
    height: int
    format: str
    size_bytes: int


@dataclass(frozen=True)
class TransformResult:
    """Encoded output bytes plus their observed metadata."""

    data: bytes
    metadata: ImageMetadata


class _OutcomeBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    index: int
    source: Any


class SuccessOutcome(_OutcomeBase):
    """A source that was resolved, transformed and stored."""

    status: Literal["success"] = "success"
    key: str
    url: str
    width: int
    height: int
    format: str
    size_bytes: int

    @property
    def metadata(self) -> ImageMetadata:
        return ImageMetadata(
            width=self.width,
            height=self.height,
            format=self.format,
            size_bytes=self.size_bytes,
        )


class FailureOutcome(_OutcomeBase):
    """A source that failed; ``error`` names the phase and the cause."""

    status: Literal["failure"] = "failure"
    error: str
    phase: FailurePhase


ItemOutcome = Annotated[
    Union[SuccessOutcome, FailureOutcome], Field(discriminator="status")
]


class BatchSummary(BaseModel):
    """Counts over the whole batch."""

    total: int
    succeeded: int
    failed: int


class BatchReport(BaseModel):
    """Outcomes in completion order plus summary counts."""

    results: List[ItemOutcome]
    summary: BatchSummary

    def to_output(self) -> Dict[str, Any]:
        """Render the report as the JSON-ready output document."""
        return self.model_dump(mode="json", by_alias=True)


class RuntimeSettings(BaseSettings):
    """Deployment settings for the storage and network collaborators.

    Read from ``IMAGE_RESIZER_*`` variables, except the endpoint and region,
    which follow the AWS SDK's own variable names.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_RESIZER_",
        extra="ignore",
        populate_by_name=True,
    )

    output_bucket: Optional[str] = None
    dataset_bucket: Optional[str] = None
    dataset_prefix: str = "datasets"
    public_url_base: Optional[str] = None
    endpoint_url: Optional[str] = Field(default=None, validation_alias="AWS_ENDPOINT_URL")
    region: Optional[str] = Field(default=None, validation_alias="AWS_REGION")
    fetch_timeout: float = Field(default=30.0, gt=0)
    fetch_retries: int = Field(default=2, ge=0)
    transform_timeout: float = Field(default=120.0, gt=0)
    store_timeout: float = Field(default=60.0, gt=0)

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        """Load settings, reporting bad values as a ConfigurationError."""
        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e
