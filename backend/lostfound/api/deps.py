"""FastAPI dependencies that hand out the handles built in ``create_app``."""

from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from lostfound.config import Settings
from lostfound.services.auth import CredentialVerifier
from lostfound.store import FoundItemStore, UserStore
from lostfound.utils.gemini import GeminiClient
from lostfound.utils.storage import ImageStore

PACKAGE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.database.sessionmaker() as session:
        yield session


def get_item_store(session: AsyncSession = Depends(get_session)) -> FoundItemStore:
    return FoundItemStore(session)


def get_user_store(session: AsyncSession = Depends(get_session)) -> UserStore:
    return UserStore(session)


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.images


def get_inference(request: Request) -> GeminiClient:
    return request.app.state.inference


def get_verifier(request: Request) -> CredentialVerifier:
    return request.app.state.verifier
