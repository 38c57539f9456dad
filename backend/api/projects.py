"""Project API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
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
from backend.schemas.project import (
    ProjectCreate,
    ProjectCreateResponse,
    ProjectDeleteResponse,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from backend.services.file_service import build_file_tree, get_owned_project, list_project_files
from backend.services.project_service import (
    create_project,
    delete_project,
    list_projects,
    to_project_info,
    touch_project,
    update_project,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.get("", response_model=ProjectListResponse)
async def get_projects(
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    user: Annotated[User, Depends(require_auth)],
) -> ProjectListResponse:
    """List the caller's projects, most recently accessed first."""
    projects = await list_projects(session, user.id, limit=settings.max_projects_listed)
    return ProjectListResponse(projects=[to_project_info(p) for p in projects])


@router.post("", response_model=ProjectCreateResponse, status_code=201)
async def post_project(
    body: ProjectCreate,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore, Depends(require_remote)],
) -> ProjectCreateResponse:
    """Create a project with its remote folder and starter files."""
    project, outcomes = await create_project(
        session,
        user.id,
        remote,
        name=body.name,
        description=body.description,
        language=body.language,
        root_folder_name=settings.drive_root_folder_name,
    )
    failed = [o.path for o in outcomes if not o.created]
    message = "Project created successfully"
    if failed:
        message = f"Project created; {len(failed)} template file(s) could not be created"
    return ProjectCreateResponse(
        message=message, project=to_project_info(project), files=outcomes
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
) -> ProjectResponse:
    """Get a project with its file tree."""
    project = await get_owned_project(session, project_id, user.id)
    await touch_project(session, project)
    records = await list_project_files(session, project.id)
    return ProjectResponse(project=to_project_info(project), file_tree=build_file_tree(records))


@router.put("/{project_id}", response_model=ProjectResponse)
async def put_project(
    project_id: int,
    body: ProjectUpdate,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore | None, Depends(optional_remote)],
) -> ProjectResponse:
    """Rename or re-describe a project."""
    project = await get_owned_project(session, project_id, user.id)
    project = await update_project(
        session, project, remote, name=body.name, description=body.description
    )
    return ProjectResponse(message="Project updated successfully", project=to_project_info(project))


@router.delete("/{project_id}", response_model=ProjectDeleteResponse)
async def remove_project(
    project_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
    remote: Annotated[RemoteStore | None, Depends(optional_remote)],
) -> ProjectDeleteResponse:
    """Delete a project, its files and (best-effort) its remote folder."""
    project = await get_owned_project(session, project_id, user.id)
    project_name = project.name
    remote_deleted = await delete_project(session, project, remote)
    return ProjectDeleteResponse(
        message="Project deleted successfully",
        id=project_id,
        name=project_name,
        remote_deleted=remote_deleted,
    )
