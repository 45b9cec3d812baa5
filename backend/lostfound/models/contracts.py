"""Pydantic models passed between services and templates."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from uuid import UUID

from pydantic import BaseModel, ConfigDict

UPLOADS_URL_PREFIX = "/uploads"


class FoundItemView(BaseModel):
    """Read-only snapshot of a FoundItem row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    image_path: str
    description: str
    location: str
    created_at: datetime

    @property
    def image_url(self) -> str:
        return f"{UPLOADS_URL_PREFIX}/{Path(self.image_path).name}"


class MatchResult(BaseModel):
    """One scored entry from the model's reply. Never persisted."""

    item_id: str
    score: int
    reason: str = ""


class MatchedItem(BaseModel):
    item: FoundItemView
    score: int
    reason: str = ""
