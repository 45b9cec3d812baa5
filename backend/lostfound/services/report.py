"""Report a found item: store the photo, describe it, save the record.

Either the whole sequence succeeds or nothing is left behind. If the
description call or the insert fails, the stored photo is removed again.
"""

from __future__ import annotations

import asyncio

import structlog

from lostfound.errors import InvalidUploadError, ReportFailedError
from lostfound.models.db import FoundItem
from lostfound.store import FoundItemStore
from lostfound.utils.gemini import GeminiClient
from lostfound.utils.image import detect_mime_type
from lostfound.utils.storage import ImageStore

logger = structlog.get_logger()

NO_DESCRIPTION = "No description available"


def choose_description(generated: str | None, fallback: str | None) -> str:
    """Model text, else the reporter's own text, else a fixed sentinel."""
    for candidate in (generated, fallback):
        if candidate and candidate.strip():
            return candidate.strip()
    return NO_DESCRIPTION


async def report_found(
    store: FoundItemStore,
    images: ImageStore,
    inference: GeminiClient,
    *,
    image_data: bytes,
    filename: str | None = None,
    mime_type: str | None = None,
    location: str | None = None,
    fallback_description: str | None = None,
) -> FoundItem:
    if not image_data:
        raise InvalidUploadError()

    detected = await asyncio.to_thread(detect_mime_type, image_data)
    if detected is None:
        raise InvalidUploadError("Uploaded file is not a valid image")
    if not mime_type or not mime_type.startswith("image/"):
        mime_type = detected

    try:
        path = await asyncio.to_thread(images.save, image_data, filename)
    except OSError as exc:
        logger.exception("image_save_failed", filename=filename, size=len(image_data))
        raise ReportFailedError() from exc

    try:
        generated = await inference.describe_image(image_data, mime_type)
        if not generated.strip():
            logger.warning("gemini_empty_description", path=str(path))
        item = await store.create(
            image_path=str(path),
            description=choose_description(generated, fallback_description),
            location=location.strip() if location else None,
        )
    except Exception as exc:
        logger.exception("report_found_failed", path=str(path), error_type=type(exc).__name__)
        await asyncio.to_thread(images.delete, path)
        raise ReportFailedError() from exc
    except asyncio.CancelledError:
        # no await here; the task is already being cancelled
        logger.warning("report_found_cancelled", path=str(path))
        images.delete(path)
        raise

    logger.info("found_item_reported", item_id=str(item.id), mime_type=mime_type)
    return item
