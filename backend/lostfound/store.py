"""Record access for found items and users.

Thin wrappers over an ``AsyncSession``. Each write commits immediately;
there are no multi-statement transactions in this application.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from lostfound.models.db import DEFAULT_LOCATION, FoundItem, User

logger = structlog.get_logger()


def parse_item_id(item_id: str | uuid.UUID) -> uuid.UUID | None:
    """Return the UUID for ``item_id`` or None if it is not a valid id."""
    if isinstance(item_id, uuid.UUID):
        return item_id
    try:
        return uuid.UUID(str(item_id))
    except ValueError:
        return None


class FoundItemStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        *,
        image_path: str,
        description: str,
        location: str | None = None,
    ) -> FoundItem:
        item = FoundItem(
            image_path=image_path,
            description=description,
            location=location or DEFAULT_LOCATION,
        )
        self.session.add(item)
        await self.session.commit()
        await self.session.refresh(item)
        logger.info("found_item_created", item_id=str(item.id), location=item.location)
        return item

    async def list_all(self) -> list[FoundItem]:
        """Every stored item, oldest first. Unbounded."""
        result = await self.session.execute(select(FoundItem).order_by(FoundItem.created_at))
        return list(result.scalars().all())

    async def get(self, item_id: str | uuid.UUID) -> FoundItem | None:
        key = parse_item_id(item_id)
        if key is None:
            return None
        return await self.session.get(FoundItem, key)

    async def delete(self, item_id: str | uuid.UUID) -> bool:
        """Delete by id. Returns False when no row matched."""
        key = parse_item_id(item_id)
        if key is None:
            return False
        result = await self.session.execute(delete(FoundItem).where(FoundItem.id == key))
        await self.session.commit()
        deleted = bool(result.rowcount)
        if deleted:
            logger.info("found_item_deleted", item_id=str(key))
        return deleted


class UserStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_username(self, username: str) -> User | None:
        """First user with this name. Usernames are not unique-constrained."""
        result = await self.session.execute(
            select(User).where(User.username == username).order_by(User.id).limit(1)
        )
        return result.scalars().first()
