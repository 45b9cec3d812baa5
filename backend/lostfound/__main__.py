"""Run the web server: ``python -m lostfound``.

Exits with status 1 if required configuration is missing.
"""

from __future__ import annotations

import sys

import structlog
import uvicorn

from lostfound.config import settings
from lostfound.errors import ConfigurationError
from lostfound.logging import configure_logging
from lostfound.main import create_app

logger = structlog.get_logger()


def main() -> None:
    configure_logging(settings)
    try:
        app = create_app(settings)
    except ConfigurationError as exc:
        logger.error("startup_aborted", reason=str(exc))
        sys.exit(1)
    logger.info("server_starting", host=settings.host, port=settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
