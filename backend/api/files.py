"""File API endpoints: tree, content read/write, create, rename, move, delete."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import (
    get_session,
    get_settings,
    optional_remote,
    require_auth,
    require_remote,
)
from backend.config import Settings
from backend.models.user import User
from backend.remote.base import RemoteStore
from backend.schemas.file import (
    DeletedFile,
    FileContentResponse,
    FileCreateRequest,
    FileCreateResponse,
    FileDeleteResponse,
    FileMoveRequest,
    FileRenameRequest,
    FileTreeResponse,
    FileUpdateResponse,
    FileWriteRequest,
    FileWriteResponse,
)
from backend.services.file_service import (
    build_file_tree,
    content_size,
    get_file,
    get_owned_project,
    list_project_files,
    to_metadata,
)
from backend.services.sync_service import (
    create_entry,
    delete_entry,
    move_entry,
    read_content,
    rename_entry,
    write_content,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/files", tags=["files"])


@router.get("/{project_id}/files", response_model=FileTreeResponse)
async def get_file_tree(
    project_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
) -> FileTreeResponse:
    """Nested file tree of a project."""
    project = await get_owned_project(session, project_id, user.id)
    records = await list_project_files(session, project.id)
    return FileTreeResponse(project_id=project.id, file_tree=build_file_tree(records))


@router.get("/{project_id}/content", response_model=FileContentResponse)
async def get_file_content(
    project_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore | None, Depends(optional_remote)],
    file_id: Annotated[int | None, Query()] = None,
    path: Annotated[str | None, Query(max_length=1024)] = None,
) -> FileContentResponse:
    """Read a file, preferring the remote copy when it is reachable."""
    project = await get_owned_project(session, project_id, user.id)
    record = await get_file(session, project.id, file_id=file_id, path=path)
    result = await read_content(session, record, remote)
    return FileContentResponse(
        content=result.content,
        metadata=to_metadata(result.record),
        warning=result.warning,
    )


@router.put("/{project_id}/content", response_model=FileWriteResponse)
async def put_file_content(
    project_id: int,
    body: FileWriteRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore | None, Depends(optional_remote)],
    file_id: Annotated[int | None, Query()] = None,
    path: Annotated[str | None, Query(max_length=1024)] = None,
) -> FileWriteResponse:
    """Save a file locally, then mirror it to the remote store."""
    project = await get_owned_project(session, project_id, user.id)
    if body.content is not None and content_size(body.content) > settings.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File content exceeds the maximum allowed size",
        )
    record = await get_file(session, project.id, file_id=file_id, path=path)
    record = await write_content(session, record, body.content, remote)
    message = "File saved successfully"
    if record.sync_status != "synced":
        message = f"File saved locally (sync status: {record.sync_status})"
    return FileWriteResponse(message=message, metadata=to_metadata(record))


@router.post("/{project_id}/create", response_model=FileCreateResponse, status_code=201)
async def post_file(
    project_id: int,
    body: FileCreateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore, Depends(require_remote)],
) -> FileCreateResponse:
    """Create a file or folder under ``parent_id`` (project root when omitted)."""
    project = await get_owned_project(session, project_id, user.id)
    if content_size(body.content) > settings.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File content exceeds the maximum allowed size",
        )
    record = await create_entry(
        session,
        project,
        remote,
        name=body.name,
        entry_type=body.type,
        parent_id=body.parent_id,
        content=body.content,
    )
    return FileCreateResponse(
        message=f"{body.type.capitalize()} created successfully", file=to_metadata(record)
    )


@router.post("/{project_id}/{file_id}/rename", response_model=FileUpdateResponse)
async def post_rename(
    project_id: int,
    file_id: int,
    body: FileRenameRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore, Depends(require_remote)],
) -> FileUpdateResponse:
    """Rename a file or folder; descendant paths follow."""
    project = await get_owned_project(session, project_id, user.id)
    record = await get_file(session, project.id, file_id=file_id)
    record = await rename_entry(session, project, record, body.name, remote)
    return FileUpdateResponse(message="Renamed successfully", file=to_metadata(record))


@router.post("/{project_id}/{file_id}/move", response_model=FileUpdateResponse)
async def post_move(
    project_id: int,
    file_id: int,
    body: FileMoveRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore, Depends(require_remote)],
) -> FileUpdateResponse:
    """Move a file or folder under another folder or the project root."""
    project = await get_owned_project(session, project_id, user.id)
    record = await get_file(session, project.id, file_id=file_id)
    record = await move_entry(session, project, record, body.parent_id, remote)
    return FileUpdateResponse(message="Moved successfully", file=to_metadata(record))


@router.delete("/{project_id}/{file_id}", response_model=FileDeleteResponse)
async def remove_file(
    project_id: int,
    file_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore | None, Depends(optional_remote)],
) -> FileDeleteResponse:
    """Delete a file, or a folder with everything below it."""
    project = await get_owned_project(session, project_id, user.id)
    record = await get_file(session, project.id, file_id=file_id)
    deleted = DeletedFile.model_validate(
        {"id": record.id, "name": record.name, "type": record.type}
    )
    result = await delete_entry(session, project, record, remote)
    message = f"{record.type.capitalize()} deleted successfully"
    if result.remote_failures:
        message += f"; {len(result.remote_failures)} remote deletion(s) failed"
    return FileDeleteResponse(
        message=message,
        deleted_file=deleted,
        deleted_count=len(result.deleted_ids),
        remote_failures=result.remote_failures,
    )
