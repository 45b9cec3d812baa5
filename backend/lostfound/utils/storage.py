"""Local disk storage for uploaded item photos.

Files are written flat into the upload directory as
    <epoch-ms>-<8 hex chars>-<sanitized original name>
and served back by the ``/uploads`` static mount.
"""

from __future__ import annotations

import re
import time
import uuid
from pathlib import Path

import structlog

logger = structlog.get_logger()

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
MAX_NAME_LENGTH = 100


def safe_filename(original: str | None) -> str:
    """Strip directories and anything outside ``[A-Za-z0-9._-]``."""
    name = Path(original or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name[-MAX_NAME_LENGTH:] or "image"


class ImageStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def ensure_dir(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def new_name(self, original: str | None) -> str:
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe_filename(original)}"

    def save(self, data: bytes, original_name: str | None = None) -> Path:
        """Write bytes under a fresh unique name. Returns the file path."""
        path = self.ensure_dir() / self.new_name(original_name)
        path.write_bytes(data)
        logger.info("image_saved", path=str(path), size=len(data))
        return path

    def delete(self, path: str | Path) -> bool:
        """Remove a stored image. A missing file is not an error; returns False."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            logger.warning("image_already_missing", path=str(path))
            return False
        logger.info("image_deleted", path=str(path))
        return True
