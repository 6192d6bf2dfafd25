"""
Server-side image compression.

Uploads bigger than the image host accepts are re-encoded as JPEG with a
bounded quality-reduction loop before they are forwarded.
"""

import io
import math
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from editaja.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_SIZE_MB = 3.0
MIN_DIMENSION = 640
INITIAL_QUALITY = 0.8
MIN_QUALITY = 0.3
QUALITY_STEP = 0.1
MAX_ATTEMPTS = 10
FALLBACK_SCALE = 0.8
FALLBACK_QUALITY = 0.7

JPEG_MAGIC = b"\xff\xd8\xff"
PNG_MAGIC = b"\x89PNG"
GIF_MAGIC = b"GIF8"


def detect_image_format(data: bytes) -> Optional[str]:
    """
    Identify an image from its magic bytes.

    Returns:
        ``"jpg"``, ``"png"``, ``"webp"``, ``"gif"`` or None.
    """
    if data[:3] == JPEG_MAGIC:
        return "jpg"
    if data[:4] == PNG_MAGIC:
        return "png"
    if len(data) >= 12 and data[8:12] == b"WEBP":
        return "webp"
    if data[:4] == GIF_MAGIC:
        return "gif"
    return None


def convert_to_png(data: bytes) -> Optional[bytes]:
    """First frame of any image Pillow can decode, as PNG. None when undecodable."""
    try:
        with Image.open(io.BytesIO(data)) as opened:
            opened.seek(0)
            image = opened.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"Cannot convert image to PNG: {e}")
        return None
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def calculate_optimal_dimensions(width: int, height: int, original_size: int, target_size: int) -> Tuple[int, int]:
    """
    Scale dimensions so the re-encoded file lands near ``target_size`` bytes.

    File size grows roughly with pixel count, hence the square root. The
    smaller side never drops below MIN_DIMENSION (unless it already was) and
    both sides are rounded to even numbers.
    """
    scale = math.sqrt(target_size / original_size) * 0.95
    scale = min(scale, 1.0)

    short_side = min(width, height)
    if short_side * scale < MIN_DIMENSION:
        scale = min(1.0, MIN_DIMENSION / short_side)

    new_width = max(2, int(width * scale) // 2 * 2)
    new_height = max(2, int(height * scale) // 2 * 2)
    return new_width, new_height


def _encode_jpeg(image: Image.Image, quality: float) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=int(round(quality * 100)), optimize=True)
    return buffer.getvalue()


def compress_image(
    data: bytes,
    max_size_mb: float = DEFAULT_MAX_SIZE_MB,
    initial_quality: float = INITIAL_QUALITY,
) -> Tuple[bytes, str]:
    """
    Compress an image to fit under ``max_size_mb``.

    Args:
        data: Raw image bytes.
        max_size_mb: Target ceiling in megabytes.
        initial_quality: First JPEG quality (0-1) to try.

    Returns:
        ``(bytes, content_type)``. Images already small enough, and anything
        Pillow cannot decode, come back unchanged.
    """
    max_bytes = int(max_size_mb * 1024 * 1024)
    original_type = f"image/{(detect_image_format(data) or 'jpeg').replace('jpg', 'jpeg')}"
    if len(data) <= max_bytes:
        return data, original_type

    try:
        with Image.open(io.BytesIO(data)) as opened:
            image = ImageOps.exif_transpose(opened).convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"Image compression skipped, cannot decode: {e}")
        return data, original_type

    width, height = calculate_optimal_dimensions(image.width, image.height, len(data), max_bytes)
    if (width, height) != image.size:
        image = image.resize((width, height), Image.LANCZOS)

    quality = initial_quality
    result = _encode_jpeg(image, quality)
    attempts = 1
    while len(result) > max_bytes and attempts < MAX_ATTEMPTS and quality - QUALITY_STEP >= MIN_QUALITY - 1e-9:
        quality = round(quality - QUALITY_STEP, 2)
        result = _encode_jpeg(image, quality)
        attempts += 1

    if len(result) > max_bytes:
        smaller = image.resize(
            (max(2, int(image.width * FALLBACK_SCALE) // 2 * 2), max(2, int(image.height * FALLBACK_SCALE) // 2 * 2)),
            Image.LANCZOS,
        )
        result = _encode_jpeg(smaller, FALLBACK_QUALITY)

    logger.info(
        "Compressed image",
        extra={"extra_data": {
            "original_bytes": len(data),
            "compressed_bytes": len(result),
            "quality": quality,
            "attempts": attempts,
        }},
    )
    return result, "image/jpeg"
