"""
Image validation: reject malformed, oversized or unsupported uploads early.
"""

import io
from typing import Optional

from PIL import Image

from .config import PipelineConfig
from .errors import CorruptImage, EmptyPayload, PayloadTooLarge, UnsupportedFormat
from .models import RawImage, ValidatedImage, WARNING_LOW_RESOLUTION
from .utils import normalize_content_type


def _decode(data: bytes) -> Image.Image:
    """Decode image bytes fully, raising CorruptImage on any decoder failure."""
    try:
        # verify() catches truncated/corrupt files but leaves the image unusable
        with Image.open(io.BytesIO(data)) as probe:
            probe.verify()
        img = Image.open(io.BytesIO(data))
        img.load()
    except Exception as e:
        # decoders raise a variety of types (OSError, SyntaxError, struct.error, ...)
        raise CorruptImage(f"Invalid or corrupted image: {e}") from e
    if img.width <= 0 or img.height <= 0:
        raise CorruptImage(f"Image has no pixels: {img.width}x{img.height}")
    return img


def validate_image(raw: RawImage, config: Optional[PipelineConfig] = None) -> ValidatedImage:
    """
    Validate an uploaded image. Checks run in order; the first failure wins.

    Raises:
        EmptyPayload, UnsupportedFormat, PayloadTooLarge, CorruptImage
    """
    config = config or PipelineConfig()

    if not raw.data:
        raise EmptyPayload("File is empty")

    content_type = normalize_content_type(raw.content_type)
    if content_type not in config.allowed_content_types:
        raise UnsupportedFormat(f"Unsupported image format: {raw.content_type}")

    if raw.size > config.max_payload_bytes:
        raise PayloadTooLarge(
            f"File too large: {raw.size} bytes (max {config.max_payload_bytes})")

    img = _decode(raw.data)

    warnings = []
    if img.width * img.height < config.min_pixel_area:
        warnings.append(WARNING_LOW_RESOLUTION)

    return ValidatedImage(image=img, source=raw, warnings=warnings)
