"""SQLAlchemy ORM models for the lost-and-found store.

The database holds records only. Image bytes live on disk under the
upload directory and are referenced by ``FoundItem.image_path``.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

DEFAULT_LOCATION = "Unknown"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class FoundItem(Base):
    __tablename__ = "found_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    image_path: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(
        String(255), nullable=False, default=DEFAULT_LOCATION
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def __repr__(self) -> str:
        return f"<FoundItem {self.id} location={self.location!r}>"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_username", "username"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    # Stored as entered; see services.auth for the verifier seam.
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str | None] = mapped_column(String(50), nullable=True)
