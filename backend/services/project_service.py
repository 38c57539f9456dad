"""Project service: lifecycle of projects and their remote folders."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from backend.exceptions import (
    AuthExpiredError,
    ConflictError,
    IdeError,
    RemoteUnavailableError,
)
from backend.models.file import FILE_TYPE, FileRecord
from backend.models.project import Project
from backend.schemas.project import ProjectInfo, TemplateFileOutcome
from backend.services.datetime_service import format_iso, now_utc
from backend.services.file_service import join_path
from backend.services.sync_service import create_entry
from backend.services.template_service import template_files

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.remote.base import RemoteStore

logger = logging.getLogger(__name__)


def to_project_info(project: Project) -> ProjectInfo:
    return ProjectInfo(
        id=project.id,
        name=project.name,
        description=project.description,
        language=project.language,
        remote_folder_id=project.remote_folder_id,
        file_count=project.file_count,
        sync_status=project.sync_status,
        last_accessed_at=project.last_accessed_at,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


async def _name_taken(
    session: AsyncSession, owner_id: int, name: str, exclude_id: int | None = None
) -> bool:
    stmt = select(Project.id).where(Project.owner_id == owner_id, Project.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Project.id != exclude_id)
    return (await session.execute(stmt)).first() is not None


async def list_projects(session: AsyncSession, owner_id: int, limit: int = 50) -> list[Project]:
    """Projects of ``owner_id``, most recently accessed first."""
    stmt = (
        select(Project)
        .where(Project.owner_id == owner_id)
        .order_by(Project.last_accessed_at.desc(), Project.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def touch_project(session: AsyncSession, project: Project) -> None:
    """Record an access to ``project``."""
    project.last_accessed_at = format_iso(now_utc())
    await session.commit()


async def provision_template_files(
    session: AsyncSession,
    project: Project,
    remote: RemoteStore,
) -> list[TemplateFileOutcome]:
    """Create the project's starter files one by one.

    Each file is all-or-nothing; a failure is reported in its outcome and
    does not stop the remaining files.
    """
    outcomes: list[TemplateFileOutcome] = []
    for template in template_files(project.language, project.name, project.description):
        path = join_path(None, template.name)
        try:
            record = await create_entry(
                session,
                project,
                remote,
                name=template.name,
                entry_type=FILE_TYPE,
                content=template.content,
            )
        except IdeError as exc:
            logger.error(
                "Failed to create template file %s for project %s: %s", path, project.id, exc
            )
            outcomes.append(
                TemplateFileOutcome(name=template.name, path=path, created=False, error=exc.message)
            )
            continue
        outcomes.append(
            TemplateFileOutcome(name=template.name, path=path, created=True, file_id=record.id)
        )
    return outcomes


async def create_project(
    session: AsyncSession,
    owner_id: int,
    remote: RemoteStore,
    *,
    name: str,
    description: str = "",
    language: str = "javascript",
    root_folder_name: str = "AI-IDE Projects",
) -> tuple[Project, list[TemplateFileOutcome]]:
    """Create a project folder remotely, record the project, then add template files."""
    if await _name_taken(session, owner_id, name):
        raise ConflictError("A project with this name already exists")

    root_folder = await remote.get_or_create_root_folder(root_folder_name)
    folder = await remote.create_folder(name, root_folder.id)

    now = format_iso(now_utc())
    project = Project(
        owner_id=owner_id,
        name=name,
        description=description,
        language=language,
        remote_folder_id=folder.id,
        file_count=0,
        sync_status="synced",
        last_accessed_at=now,
        created_at=now,
        updated_at=now,
    )
    session.add(project)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        try:
            await remote.delete_file(folder.id)
        except (RemoteUnavailableError, AuthExpiredError) as cleanup_exc:
            logger.warning(
                "Failed to remove orphaned project folder %s: %s", folder.id, cleanup_exc
            )
        raise ConflictError("A project with this name already exists") from exc

    logger.info("Created project %s (id=%s) for user %s", name, project.id, owner_id)
    outcomes = await provision_template_files(session, project, remote)
    return project, outcomes


async def update_project(
    session: AsyncSession,
    project: Project,
    remote: RemoteStore | None,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Project:
    """Rename and/or re-describe a project.

    The remote folder rename is best-effort: a failure is logged and the
    local rename still happens.
    """
    if name is not None and name != project.name:
        if await _name_taken(session, project.owner_id, name, exclude_id=project.id):
            raise ConflictError("A project with this name already exists")
        if remote is not None:
            try:
                await remote.rename_file(project.remote_folder_id, name)
            except (RemoteUnavailableError, AuthExpiredError) as exc:
                logger.warning("Failed to rename project folder %s: %s", project.id, exc)
        project.name = name
    if description is not None:
        project.description = description.strip()
    project.updated_at = format_iso(now_utc())
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("A project with this name already exists") from exc
    return project


async def delete_project(
    session: AsyncSession,
    project: Project,
    remote: RemoteStore | None,
) -> bool:
    """Delete a project with all its file records.

    Returns True if the remote folder was deleted as well.
    """
    remote_deleted = False
    if remote is not None:
        try:
            await remote.delete_file(project.remote_folder_id)
            remote_deleted = True
        except (RemoteUnavailableError, AuthExpiredError) as exc:
            logger.warning("Failed to delete project folder %s from remote: %s", project.id, exc)

    await session.execute(delete(FileRecord).where(FileRecord.project_id == project.id))
    await session.delete(project)
    await session.commit()
    logger.info("Deleted project %s (remote_deleted=%s)", project.id, remote_deleted)
    return remote_deleted
