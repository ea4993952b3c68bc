"""Error taxonomy shared by services and routes.

Every error carries a stable `code` and the HTTP status the API layer maps it to.
"""

from typing import Any


class StoreFinderError(RuntimeError):
    """Base class for domain errors."""

    code = "STORE_FINDER_ERROR"
    status_code = 500

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(StoreFinderError):
    code = "VALIDATION_ERROR"
    status_code = 400


class UnsupportedMediaType(ValidationError):
    code = "UNSUPPORTED_MEDIA_TYPE"
    status_code = 415


class NotFoundError(StoreFinderError):
    code = "NOT_FOUND"
    status_code = 404


class AuthorizationError(StoreFinderError):
    code = "FORBIDDEN"
    status_code = 403


class DecodeError(StoreFinderError):
    code = "IMAGE_DECODE_ERROR"
    status_code = 422


class PersistenceError(StoreFinderError):
    code = "PERSISTENCE_ERROR"
    status_code = 500
