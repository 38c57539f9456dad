"""Sync API endpoints: project sync status, manual retry, remote listing."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session, optional_remote, require_auth, require_remote
from backend.models.user import User
from backend.remote.base import RemoteStore
from backend.schemas.sync import (
    FileSyncState,
    ProjectSyncStatusResponse,
    RemoteEntry,
    RemoteListingResponse,
    RetrySyncResponse,
)
from backend.services.file_service import (
    get_file,
    get_owned_project,
    list_project_files,
    to_metadata,
)
from backend.services.sync_service import project_sync_status, retry_sync

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


@router.get("/{project_id}/status", response_model=ProjectSyncStatusResponse)
async def get_sync_status(
    project_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
) -> ProjectSyncStatusResponse:
    """Aggregate and per-file sync state of a project."""
    project = await get_owned_project(session, project_id, user.id)
    files = [r for r in await list_project_files(session, project.id) if not r.is_folder]
    counts = Counter(r.sync_status for r in files)
    return ProjectSyncStatusResponse(
        project_id=project.id,
        sync_status=project_sync_status(counts).value,
        counts=dict(counts),
        files=[
            FileSyncState(
                id=r.id,
                path=r.path,
                sync_status=r.sync_status,  # type: ignore[arg-type]
                version=r.version,
                last_synced_at=r.last_synced_at,
            )
            for r in files
        ],
    )


@router.post("/{project_id}/{file_id}/retry", response_model=RetrySyncResponse)
async def post_retry(
    project_id: int,
    file_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore | None, Depends(optional_remote)],
) -> RetrySyncResponse:
    """Re-push a file's current content to the remote store."""
    project = await get_owned_project(session, project_id, user.id)
    record = await get_file(session, project.id, file_id=file_id)
    record = await retry_sync(session, record, remote)
    logger.info("Manual sync retry of file %s finished with %s", record.id, record.sync_status)
    return RetrySyncResponse(
        message=f"Sync retry finished: {record.sync_status}", metadata=to_metadata(record)
    )


@router.get("/{project_id}/remote", response_model=RemoteListingResponse)
async def get_remote_listing(
    project_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore, Depends(require_remote)],
    folder_id: Annotated[int | None, Query()] = None,
) -> RemoteListingResponse:
    """List a project folder as the remote store sees it."""
    project = await get_owned_project(session, project_id, user.id)
    remote_folder = project.remote_folder_id
    if folder_id is not None:
        folder = await get_file(session, project.id, file_id=folder_id)
        if not folder.is_folder:
            raise ValueError("folder_id must refer to a folder")
        remote_folder = folder.remote_id

    tracked = {r.remote_id for r in await list_project_files(session, project.id)}
    objects = await remote.list_files(remote_folder)
    return RemoteListingResponse(
        project_id=project.id,
        folder_id=remote_folder,
        entries=[
            RemoteEntry(
                id=obj.id,
                name=obj.name,
                mime_type=obj.mime_type,
                is_folder=obj.is_folder,
                size=obj.size,
                md5=obj.md5,
                modified_time=obj.modified_time,
                tracked=obj.id in tracked,
            )
            for obj in objects
        ],
    )
