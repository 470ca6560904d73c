"""Image transformation service built on Pillow."""

import io
from dataclasses import dataclass
from typing import Any, Dict, Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import TransformError, TransformErrorKind
from .image_utils import (
    can_write,
    format_name,
    has_alpha,
    parse_background,
    resize_within_bounds,
)
from .models import ImageMetadata, OutputFormat, TransformResult, TransformSpec

_PIL_FORMATS = {
    OutputFormat.JPEG: "JPEG",
    OutputFormat.PNG: "PNG",
    OutputFormat.WEBP: "WEBP",
    OutputFormat.AVIF: "AVIF",
    OutputFormat.GIF: "GIF",
}

# Camera JPEGs decode as MPO; they are re-encoded as plain JPEG.
_ORIGINAL_ALIASES = {"MPO": "JPEG"}

_METADATA_FORMATS = ("JPEG", "PNG", "WEBP", "AVIF")

_CODEC_ERRORS = (
    OSError,
    SyntaxError,
    ValueError,
    EOFError,
    UnidentifiedImageError,
    Image.DecompressionBombError,
)


@dataclass
class DecodedImage:
    """A decoded source image and what it carried with it."""

    image: Image.Image
    source_format: str
    exif: Optional[Image.Exif] = None
    icc_profile: Optional[bytes] = None


class ImageTransformer:
    """Pure image transformation service with no I/O dependencies.

    Instances are stateless and may be shared between threads.
    """

    def transform(self, image_bytes: bytes, spec: TransformSpec) -> TransformResult:
        """
        Decode, orient, resize and re-encode one image.

        Args:
            image_bytes: Raw source bytes in any format Pillow can read
            spec: Transformation rules for the batch

        Returns:
            Output bytes with width, height, format and size observed
            from the encoded result

        Raises:
            TransformError: With kind UNSUPPORTED_FORMAT when no encoder is
                available for the target format, CODEC_FAILURE otherwise
        """
        try:
            decoded = self.decode(image_bytes)
            image = decoded.image

            if spec.strip_metadata:
                image = ImageOps.exif_transpose(image)

            if spec.resize_requested:
                image = resize_within_bounds(
                    image,
                    spec.width,
                    spec.height,
                    spec.fit.value,
                    spec.position,
                    spec.background,
                )

            pil_format = self._target_format(spec, decoded)
            encoded = self.encode(image, pil_format, spec, decoded)
            return TransformResult(data=encoded, metadata=self.describe(encoded, pil_format))
        except TransformError:
            raise
        except _CODEC_ERRORS as e:
            raise TransformError(
                TransformErrorKind.CODEC_FAILURE, f"Failed to process image: {e}"
            ) from e

    def decode(self, image_bytes: bytes) -> DecodedImage:
        """Load image bytes; only the first frame of animations is kept."""
        if not image_bytes:
            raise TransformError(TransformErrorKind.CODEC_FAILURE, "Image data is empty")

        image = Image.open(io.BytesIO(image_bytes))
        image.load()

        exif = image.getexif()
        return DecodedImage(
            image=image,
            source_format=image.format or "",
            exif=exif if len(exif) else None,
            icc_profile=image.info.get("icc_profile"),
        )

    def encode(
        self,
        image: Image.Image,
        pil_format: str,
        spec: TransformSpec,
        decoded: DecodedImage,
    ) -> bytes:
        """Encode an image with the options for its target format."""
        image = self._prepare_mode(image, pil_format, spec.background)
        options: Dict[str, Any] = {}

        if spec.output_format != OutputFormat.ORIGINAL:
            if pil_format == "JPEG":
                options.update(quality=spec.quality, optimize=True, progressive=True)
            elif pil_format == "PNG":
                options.update(compress_level=9, optimize=True)
            elif pil_format in ("WEBP", "AVIF"):
                options.update(quality=spec.quality)

        if spec.strip_metadata:
            if image is decoded.image:
                image = image.copy()
            image.info = {
                key: value for key, value in image.info.items() if key == "transparency"
            }
        elif pil_format in _METADATA_FORMATS:
            if decoded.exif is not None:
                options["exif"] = decoded.exif
            if decoded.icc_profile:
                options["icc_profile"] = decoded.icc_profile

        output = io.BytesIO()
        image.save(output, format=pil_format, **options)
        return output.getvalue()

    def describe(self, encoded: bytes, pil_format: str) -> ImageMetadata:
        """Read back the encoded output to report what was actually produced."""
        with Image.open(io.BytesIO(encoded)) as output:
            width, height = output.size
            fmt = output.format or pil_format
        return ImageMetadata(
            width=width,
            height=height,
            format=format_name(_ORIGINAL_ALIASES.get(fmt, fmt)),
            size_bytes=len(encoded),
        )

    def _target_format(self, spec: TransformSpec, decoded: DecodedImage) -> str:
        if spec.output_format == OutputFormat.ORIGINAL:
            pil_format = _ORIGINAL_ALIASES.get(decoded.source_format, decoded.source_format)
        else:
            pil_format = _PIL_FORMATS.get(spec.output_format, "")

        if not pil_format or not can_write(pil_format):
            raise TransformError(
                TransformErrorKind.UNSUPPORTED_FORMAT,
                f"Unsupported format: {format_name(pil_format or str(spec.output_format.value))}",
            )
        return pil_format

    @staticmethod
    def _prepare_mode(image: Image.Image, pil_format: str, background: str) -> Image.Image:
        if pil_format == "JPEG":
            if image.mode in ("RGB", "L", "CMYK"):
                return image
            if has_alpha(image):
                rgba = image.convert("RGBA")
                canvas = Image.new("RGB", rgba.size, parse_background(background)[:3])
                canvas.paste(rgba, (0, 0), rgba)
                return canvas
            return image.convert("RGB")
        if pil_format in ("WEBP", "AVIF"):
            if image.mode in ("RGB", "RGBA"):
                return image
            return image.convert("RGBA" if has_alpha(image) else "RGB")
        if image.mode in ("CMYK", "YCbCr", "LAB", "HSV", "F"):
            return image.convert("RGB")
        return image
