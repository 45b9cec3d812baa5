"""Claim a found item: delete its photo, then its record.

The two deletes are not atomic. If the process dies between them the
record survives with a dangling ``image_path``; nothing repairs that.
"""

from __future__ import annotations

import asyncio

import structlog

from lostfound.errors import ItemNotFoundError
from lostfound.models.contracts import FoundItemView
from lostfound.store import FoundItemStore
from lostfound.utils.storage import ImageStore

logger = structlog.get_logger()


async def claim_item(store: FoundItemStore, images: ImageStore, item_id: str) -> FoundItemView:
    item = await store.get(item_id)
    if item is None:
        logger.info("claim_item_not_found", item_id=item_id)
        raise ItemNotFoundError(item_id)

    claimed = FoundItemView.model_validate(item)
    await asyncio.to_thread(images.delete, item.image_path)
    await store.delete(item.id)

    logger.info("found_item_claimed", item_id=str(claimed.id))
    return claimed
