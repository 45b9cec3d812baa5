"""HTML endpoints: landing page, login, report, match and claim.

Handlers stay thin: read the form, call a service, render a template.
Service errors (``LostFoundError``) are rendered by the handlers in
``lostfound.main``.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse

from lostfound.api.deps import (
    get_image_store,
    get_inference,
    get_item_store,
    get_settings,
    get_user_store,
    get_verifier,
    templates,
)
from lostfound.config import Settings
from lostfound.errors import InvalidUploadError, UploadTooLargeError
from lostfound.models.contracts import FoundItemView
from lostfound.services.auth import CredentialVerifier, authenticate
from lostfound.services.claim import claim_item
from lostfound.services.matching import match_lost
from lostfound.services.report import report_found
from lostfound.store import FoundItemStore, UserStore
from lostfound.utils.gemini import GeminiClient
from lostfound.utils.storage import ImageStore

router = APIRouter(tags=["pages"])

INVALID_CREDENTIALS_HTML = "<h1>Invalid credentials</h1>"
READ_CHUNK_BYTES = 65_536


async def _read_upload(file: UploadFile, limit: int) -> bytes:
    """Stream-read with early termination to avoid buffering unbounded uploads."""
    chunks: list[bytes] = []
    total = 0
    while chunk := await file.read(READ_CHUNK_BYTES):
        total += len(chunk)
        if total > limit:
            mb = limit // (1024 * 1024)
            raise UploadTooLargeError(f"Image exceeds {mb} MB limit")
        chunks.append(chunk)
    return b"".join(chunks)


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    return templates.TemplateResponse(request, "index.html")


@router.post("/login", response_class=HTMLResponse)
async def login(
    request: Request,
    username: Annotated[str, Form()],
    password: Annotated[str, Form()],
    users: UserStore = Depends(get_user_store),
    verifier: CredentialVerifier = Depends(get_verifier),
):
    """Check credentials and greet the user. No session is issued."""
    user = await authenticate(users, verifier, username, password)
    if user is None:
        return HTMLResponse(INVALID_CREDENTIALS_HTML, status_code=401)
    return templates.TemplateResponse(request, "welcome.html", {"username": user.username})


@router.post("/report-found", response_class=HTMLResponse, status_code=201)
async def report_found_item(
    request: Request,
    image: Annotated[UploadFile | None, File()] = None,
    location: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    settings: Settings = Depends(get_settings),
    store: FoundItemStore = Depends(get_item_store),
    images: ImageStore = Depends(get_image_store),
    inference: GeminiClient = Depends(get_inference),
):
    """Upload photo -> store on disk -> describe with Gemini -> save record."""
    if image is None:
        raise InvalidUploadError()
    data = await _read_upload(image, settings.max_upload_bytes)
    item = await report_found(
        store,
        images,
        inference,
        image_data=data,
        filename=image.filename,
        mime_type=image.content_type,
        location=location,
        fallback_description=description,
    )
    return templates.TemplateResponse(
        request,
        "success.html",
        {"item": FoundItemView.model_validate(item)},
        status_code=201,
    )


@router.post("/match-lost", response_class=HTMLResponse)
async def match_lost_item(
    request: Request,
    description: Annotated[str, Form()],
    settings: Settings = Depends(get_settings),
    store: FoundItemStore = Depends(get_item_store),
    inference: GeminiClient = Depends(get_inference),
):
    matches = await match_lost(
        store, inference, description, threshold=settings.match_score_threshold
    )
    return templates.TemplateResponse(
        request,
        "matches.html",
        {"description": description, "matched_items": matches},
    )


@router.post("/claim-item/{item_id}", response_class=HTMLResponse)
async def claim(
    request: Request,
    item_id: str,
    store: FoundItemStore = Depends(get_item_store),
    images: ImageStore = Depends(get_image_store),
):
    item = await claim_item(store, images, item_id)
    return templates.TemplateResponse(request, "claimed.html", {"item": item})
