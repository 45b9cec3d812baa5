"""Exceptions raised by the lost-and-found services.

Routes translate these into status codes; each carries a user-safe
message. Underlying causes are chained and only ever logged.
"""

from __future__ import annotations


class LostFoundError(Exception):
    """Base class for errors the web layer knows how to render."""

    status_code = 500
    public_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class ConfigurationError(LostFoundError):
    """A required setting is missing. Fatal at startup."""

    public_message = "Server is misconfigured"


class InvalidUploadError(LostFoundError):
    status_code = 400
    public_message = "Image is required"


class UploadTooLargeError(InvalidUploadError):
    status_code = 413
    public_message = "Image is too large"


class ReportFailedError(LostFoundError):
    public_message = "Image processing failed"


class MatchFailedError(LostFoundError):
    public_message = "Matching failed"


class ItemNotFoundError(LostFoundError):
    status_code = 404
    public_message = "Item not found"

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Found item {item_id!r} does not exist")
        self.item_id = item_id
