"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    remote_store: str


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """Report whether the record store answers and a remote store is wired in.

    The remote store itself is not contacted: it needs per-user credentials.
    """
    try:
        await session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.warning("Record store did not answer the health probe", exc_info=True)
        database = "error"

    has_remote = getattr(request.app.state, "remote_store_factory", None) is not None
    return HealthResponse(
        status="ok" if database == "ok" and has_remote else "degraded",
        version="1.0.0",
        database=database,
        remote_store="configured" if has_remote else "missing",
    )
