"""Image geometry and format utilities for the image resizer."""

from typing import Dict, FrozenSet, Optional, Tuple

from PIL import Image, ImageColor, ImageOps

from .logging_config import get_logger

logger = get_logger("image-resizer.image")

RESAMPLE = Image.Resampling.LANCZOS

# Content-aware crop strategies accepted in input documents; cropped around the center.
CROP_STRATEGIES = frozenset({"entropy", "attention"})

_CENTERINGS: Dict[FrozenSet[str], Tuple[float, float]] = {
    frozenset({"center"}): (0.5, 0.5),
    frozenset({"centre"}): (0.5, 0.5),
    frozenset({"top"}): (0.5, 0.0),
    frozenset({"bottom"}): (0.5, 1.0),
    frozenset({"left"}): (0.0, 0.5),
    frozenset({"right"}): (1.0, 0.5),
    frozenset({"right", "top"}): (1.0, 0.0),
    frozenset({"right", "bottom"}): (1.0, 1.0),
    frozenset({"left", "bottom"}): (0.0, 1.0),
    frozenset({"left", "top"}): (0.0, 0.0),
    frozenset({"north"}): (0.5, 0.0),
    frozenset({"northeast"}): (1.0, 0.0),
    frozenset({"east"}): (1.0, 0.5),
    frozenset({"southeast"}): (1.0, 1.0),
    frozenset({"south"}): (0.5, 1.0),
    frozenset({"southwest"}): (0.0, 1.0),
    frozenset({"west"}): (0.0, 0.5),
    frozenset({"northwest"}): (0.0, 0.0),
}

_CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "avif": "image/avif",
    "gif": "image/gif",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def resolve_position(position: str) -> Tuple[float, float]:
    """
    Translate a position name into a Pillow centering tuple.

    Accepts "center", single edges ("top"), edge pairs in either order
    ("right top", "top-right") and compass gravities ("northeast").
    The "entropy" and "attention" crop strategies fall back to the center.

    Raises:
        ValueError: If the position is not recognised
    """
    words = frozenset(position.strip().lower().replace("-", " ").split())
    if len(words) == 1 and words <= CROP_STRATEGIES:
        logger.debug(f"Crop strategy {position!r} is not supported, cropping around the center")
        return _CENTERINGS[frozenset({"center"})]
    try:
        return _CENTERINGS[words]
    except KeyError:
        raise ValueError(f"Unknown position: {position!r}") from None


def parse_background(color: str) -> Tuple[int, int, int, int]:
    """
    Parse a CSS-style color into an RGBA tuple.

    Raises:
        ValueError: If Pillow does not understand the color
    """
    return ImageColor.getcolor(color, "RGBA")  # type: ignore[return-value]


def has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info


def bounded_box(
    size: Tuple[int, int], width: Optional[int], height: Optional[int]
) -> Tuple[Tuple[int, int], bool]:
    """
    Clamp the requested box to the source size so the image never grows.

    A single requested dimension derives the other from the aspect ratio.

    Returns:
        The target box, and whether both dimensions were requested
    """
    src_w, src_h = size
    if width and height:
        return (min(width, src_w), min(height, src_h)), True
    if width:
        box_w = min(width, src_w)
        return (box_w, max(1, round(src_h * box_w / src_w))), False
    if height:
        box_h = min(height, src_h)
        return (max(1, round(src_w * box_h / src_h)), box_h), False
    return size, False


def pad_to_box(
    img: Image.Image,
    box: Tuple[int, int],
    centering: Tuple[float, float],
    background: Tuple[int, int, int, int],
) -> Image.Image:
    """Place an image on a background canvas of the given size."""
    if img.size == box:
        return img

    mode = "RGBA" if has_alpha(img) or background[3] < 255 else "RGB"
    fill = background if mode == "RGBA" else background[:3]
    canvas = Image.new(mode, box, fill)
    source = img.convert(mode)
    offset = (
        round((box[0] - source.width) * centering[0]),
        round((box[1] - source.height) * centering[1]),
    )
    canvas.paste(source, offset, source if mode == "RGBA" else None)
    return canvas


def resize_within_bounds(
    img: Image.Image,
    width: Optional[int],
    height: Optional[int],
    fit: str,
    position: str,
    background: str,
) -> Image.Image:
    """
    Resize an image without enlarging it.

    Args:
        img: PIL Image to resize
        width: Requested width, or None
        height: Requested height, or None
        fit: One of "cover", "contain", "fill", "inside", "outside"
        position: Anchor used when cropping or letterboxing
        background: Color used to letterbox under "contain"

    Returns:
        Resized PIL Image; may be the input image if nothing changes

    Raises:
        ValueError: If the fit is unknown
    """
    box, both = bounded_box(img.size, width, height)
    if not both:
        # Only one dimension requested: aspect-preserving scale, fit is moot.
        return img if box == img.size else img.resize(box, RESAMPLE)

    fit = str(getattr(fit, "value", fit))
    centering = resolve_position(position)

    if fit == "fill":
        return img if box == img.size else img.resize(box, RESAMPLE)
    if fit == "cover":
        return img if box == img.size else ImageOps.fit(img, box, RESAMPLE, centering=centering)
    if fit == "inside":
        return ImageOps.contain(img, box, RESAMPLE)
    if fit == "outside":
        scale = max(box[0] / img.width, box[1] / img.height)
        size = (max(1, round(img.width * scale)), max(1, round(img.height * scale)))
        return img if size == img.size else img.resize(size, RESAMPLE)
    if fit == "contain":
        inner = ImageOps.contain(img, box, RESAMPLE)
        return pad_to_box(inner, box, centering, parse_background(background))
    raise ValueError(f"Unknown fit: {fit}")


def format_name(pil_format: Optional[str]) -> str:
    """Lower-case format identifier for a Pillow format name."""
    return (pil_format or "unknown").lower()


def content_type_for_format(name: str) -> str:
    """Map an output format identifier to a MIME type."""
    return _CONTENT_TYPES.get(name.lower(), DEFAULT_CONTENT_TYPE)


def can_write(pil_format: str) -> bool:
    """Whether the installed Pillow has an encoder for the format."""
    Image.init()
    return pil_format.upper() in Image.SAVE
