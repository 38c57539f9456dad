"""Code execution endpoints.

Sandboxed execution is not provided by this service; the endpoints accept
requests and answer with fixed placeholder payloads so that clients can be
wired up against a stable contract.
"""

from __future__ import annotations

import logging
import time
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.api.deps import require_auth
from backend.models.user import User
from backend.schemas.common import Envelope
from backend.services.datetime_service import format_iso, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/execution", tags=["execution"])


class RunRequest(BaseModel):
    code: str = ""
    language: str
    project_id: int | None = None
    files: list[dict[str, Any]] = Field(default_factory=list)


class RunResponse(Envelope):
    execution_id: str
    status: str
    language: str
    project_id: int | None = None


class ExecutionStatusResponse(Envelope):
    execution_id: str
    status: str
    output: str = ""
    error: str | None = None
    duration_ms: int = 0
    timestamp: str


class ContainerStatus(BaseModel):
    status: str
    last_used: str


class ContainersResponse(Envelope):
    containers: dict[str, ContainerStatus]


@router.post("/run", response_model=RunResponse)
async def run_code(
    body: RunRequest,
    user: Annotated[User, Depends(require_auth)],
) -> RunResponse:
    """Queue a code execution request."""
    logger.info(
        "Execution requested by user %s: language=%s project=%s code_length=%d files=%d",
        user.id,
        body.language,
        body.project_id,
        len(body.code),
        len(body.files),
    )
    return RunResponse(
        message="Code execution is not available yet",
        execution_id=f"exec_{time.time_ns()}",
        status="queued",
        language=body.language,
        project_id=body.project_id,
    )


@router.get("/containers/status", response_model=ContainersResponse)
async def containers_status(
    user: Annotated[User, Depends(require_auth)],
) -> ContainersResponse:
    """Health of the execution containers."""
    _ = user
    now = format_iso(now_utc())
    return ContainersResponse(
        containers={
            "python": ContainerStatus(status="healthy", last_used=now),
            "javascript": ContainerStatus(status="healthy", last_used=now),
        }
    )


@router.get("/{execution_id}/status", response_model=ExecutionStatusResponse)
async def execution_status(
    execution_id: str,
    user: Annotated[User, Depends(require_auth)],
) -> ExecutionStatusResponse:
    """Status of a previously queued execution."""
    _ = user
    return ExecutionStatusResponse(
        execution_id=execution_id,
        status="completed",
        timestamp=format_iso(now_utc()),
    )


@router.post("/{execution_id}/terminate", response_model=RunResponse)
async def terminate_execution(
    execution_id: str,
    user: Annotated[User, Depends(require_auth)],
) -> RunResponse:
    """Terminate a running execution."""
    logger.info("Termination of %s requested by user %s", execution_id, user.id)
    return RunResponse(
        message="Code execution is not available yet",
        execution_id=execution_id,
        status="terminated",
        language="",
    )
