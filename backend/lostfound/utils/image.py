"""Upload sanity checks with Pillow."""

from __future__ import annotations

import io

import structlog
from PIL import Image

logger = structlog.get_logger()


def detect_mime_type(data: bytes) -> str | None:
    """Decode ``data`` fully and return its MIME type, or None if it is not an image."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()  # Force full decode to catch truncated files
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning("image_decode_failed", error=str(exc), size=len(data))
        return None
    fmt = img.format or "octet-stream"
    return Image.MIME.get(fmt) or f"image/{fmt.lower()}"
