"""Application factory and composition root.

``create_app`` builds every long-lived handle once (Gemini client,
database, image store, credential verifier) and keeps them on
``app.state``. Run with:
    uvicorn lostfound.main:create_app --factory
or ``python -m lostfound``.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from lostfound import __version__
from lostfound.api.deps import STATIC_DIR, templates
from lostfound.api.routes import health, pages
from lostfound.config import Settings, settings as default_settings
from lostfound.errors import ConfigurationError, LostFoundError
from lostfound.logging import configure_logging
from lostfound.services.auth import CredentialVerifier, PlaintextCredentialVerifier
from lostfound.utils.database import Database
from lostfound.utils.gemini import GeminiClient
from lostfound.utils.storage import ImageStore

logger = structlog.get_logger()


def _render_error(request: Request, status_code: int, message: str) -> HTMLResponse:
    response = templates.TemplateResponse(
        request,
        "error.html",
        {"message": message, "status_code": status_code},
        status_code=status_code,
    )
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


def _install_handlers(app: FastAPI) -> None:
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Tag every request with an ID that appears in all of its log lines."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(LostFoundError)
    async def lost_found_error_handler(request: Request, exc: LostFoundError) -> HTMLResponse:
        # 4xx messages describe the user's input; 5xx stay generic
        message = str(exc) if exc.status_code < 500 else exc.public_message
        logger.info(
            "request_failed",
            path=request.url.path,
            status=exc.status_code,
            error_type=type(exc).__name__,
        )
        return _render_error(request, exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> HTMLResponse:
        fields = [".".join(str(part) for part in err["loc"][1:]) for err in exc.errors()]
        logger.info("request_invalid", path=request.url.path, fields=fields)
        return _render_error(request, 422, "Some required fields are missing or invalid")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> HTMLResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return _render_error(request, 500, "An unexpected error occurred")


def create_app(
    settings: Settings | None = None,
    *,
    inference: GeminiClient | None = None,
    database: Database | None = None,
    verifier: CredentialVerifier | None = None,
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    if not settings.gemini_api_key:
        logger.error("gemini_api_key_missing")
        raise ConfigurationError("GEMINI_API_KEY is not set")

    database = database or Database(settings.database_url)
    images = ImageStore(settings.upload_dir)
    images.ensure_dir()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.create_tables_on_startup:
            await database.create_all()
        logger.info("app_started", environment=settings.environment, upload_dir=str(images.root))
        yield
        await database.dispose()

    app = FastAPI(
        title="Lost & Found",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.images = images
    app.state.inference = inference or GeminiClient.from_settings(settings)
    app.state.verifier = verifier or PlaintextCredentialVerifier()

    _install_handlers(app)
    app.include_router(health.router)
    app.include_router(pages.router)
    app.mount("/uploads", StaticFiles(directory=images.root), name="uploads")
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
    return app
