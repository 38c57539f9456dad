"""Response envelope shared by all API endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class Envelope(BaseModel):
    """Base for JSON responses: ``{success, message, ...payload}``."""

    success: bool = True
    message: str = ""


class ErrorResponse(BaseModel):
    """Error envelope returned by the global exception handlers."""

    success: bool = False
    message: str
    error: str | None = None
    code: str | None = None
