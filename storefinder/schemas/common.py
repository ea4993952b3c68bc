"""Common schemas used across the API."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Structured error detail."""

    code: str
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response format.

    Format: { "error": { "code": str, "message": str, "detail": object } }
    """

    error: ErrorDetail


FlashLevel = Literal["success", "info", "error"]


class Flash(BaseModel):
    """User-visible status message handed to the session collaborator."""

    level: FlashLevel = "info"
    message: str


class RenderPayload(BaseModel):
    """View name plus data for the rendering collaborator.

    Render-targeted routes return this instead of HTML; templating lives outside the API.
    """

    view: str
    title: str
    data: dict[str, Any] = Field(default_factory=dict)
    flashes: list[Flash] = Field(default_factory=list)
