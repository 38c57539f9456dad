"""Language-server endpoints returning placeholder results."""

from __future__ import annotations

import logging
import time
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.api.deps import require_auth
from backend.models.user import User
from backend.schemas.common import Envelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/lsp", tags=["lsp"])

_CAPABILITIES: dict[str, Any] = {
    "textDocumentSync": 2,
    "hoverProvider": True,
    "completionProvider": True,
    "definitionProvider": True,
    "referencesProvider": True,
    "documentFormattingProvider": True,
}


class InitializeRequest(BaseModel):
    project_id: int | None = None
    root_uri: str | None = None


class DocumentRequest(BaseModel):
    text_document: dict[str, Any] = Field(default_factory=dict)
    position: dict[str, Any] | None = None
    options: dict[str, Any] | None = None


class InitializeResponse(Envelope):
    session_id: str
    language: str
    project_id: int | None = None
    capabilities: dict[str, Any]


class LspResultResponse(Envelope):
    session_id: str
    items: list[dict[str, Any]] = Field(default_factory=list)


@router.post("/{language}/initialize", response_model=InitializeResponse)
async def initialize(
    language: str,
    body: InitializeRequest,
    user: Annotated[User, Depends(require_auth)],
) -> InitializeResponse:
    logger.info("LSP session requested by user %s for %s", user.id, language)
    return InitializeResponse(
        message="Language server is not available yet",
        session_id=f"lsp_{language}_{time.time_ns()}",
        language=language,
        project_id=body.project_id,
        capabilities=_CAPABILITIES,
    )


@router.post("/{session_id}/{feature}", response_model=LspResultResponse)
async def feature_request(
    session_id: str,
    feature: str,
    body: DocumentRequest,
    user: Annotated[User, Depends(require_auth)],
) -> LspResultResponse:
    """Completion, hover, definition, references and format requests."""
    if feature not in {"completion", "hover", "definition", "references", "format"}:
        raise ValueError(f"Unsupported language feature: {feature}")
    logger.debug(
        "LSP %s for session %s by user %s (%s)",
        feature,
        session_id,
        user.id,
        body.text_document.get("uri"),
    )
    return LspResultResponse(session_id=session_id)


@router.delete("/{session_id}", response_model=LspResultResponse)
async def shutdown(
    session_id: str,
    user: Annotated[User, Depends(require_auth)],
) -> LspResultResponse:
    logger.info("LSP session %s closed by user %s", session_id, user.id)
    return LspResultResponse(message="Language server session closed", session_id=session_id)
