"""Shared fixtures: per-test SQLite database, upload dir, mocked Gemini, ASGI client."""

from __future__ import annotations

import io
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from PIL import Image

from lostfound.config import Settings
from lostfound.main import create_app
from lostfound.store import FoundItemStore, UserStore
from lostfound.utils.database import Database
from lostfound.utils.gemini import GeminiClient
from lostfound.utils.storage import ImageStore

DESCRIPTION = "A red compact umbrella with a black wooden handle and a 'Totes' logo."


def make_image_bytes(fmt: str = "PNG", color: str = "red", size: tuple[int, int] = (32, 32)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image():
    return make_image_bytes


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        gemini_api_key="test-key",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'lostfound.db'}",
        upload_dir=str(tmp_path / "uploads"),
        create_tables_on_startup=False,
        environment="test",
        log_level="WARNING",
    )


@pytest.fixture
async def database(settings: Settings):
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database: Database):
    async with database.sessionmaker() as session:
        yield session


@pytest.fixture
def item_store(session) -> FoundItemStore:
    return FoundItemStore(session)


@pytest.fixture
def user_store(session) -> UserStore:
    return UserStore(session)


@pytest.fixture
def image_store(settings: Settings) -> ImageStore:
    return ImageStore(settings.upload_dir)


@pytest.fixture
def inference() -> MagicMock:
    """GeminiClient stand-in. Tests override return values per case."""
    mock = MagicMock(spec=GeminiClient)
    mock.describe_image = AsyncMock(return_value=DESCRIPTION)
    mock.complete_text = AsyncMock(return_value="[]")
    return mock


@pytest.fixture
def app(settings: Settings, database: Database, inference: MagicMock):
    return create_app(settings, inference=inference, database=database)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
