"""Sync engine: local-first content reads/writes mirrored to the remote store.

Policy summary:

- A content write is durable once the local record is committed; the remote
  update happens afterwards and its failure only moves the record to
  ``error``. There is no automatic retry: the next write (or an explicit
  ``retry_sync``) is the only recovery path. Each write bumps ``version`` in
  the database; only the write holding the newest version may mark the
  record ``synced``.
- A content read prefers the remote copy. When the remote content differs
  from the cached content, the remote version replaces the local one
  (remote wins, no merge). When the remote cannot be reached the cached
  content is returned unchanged.
- Create/rename/move talk to the remote first and only touch local records
  once the remote operation succeeded. Delete is best-effort towards the
  remote and always removes the local records.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from backend.exceptions import (
    AuthExpiredError,
    ConflictError,
    InternalServerError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
    RemoteUnavailableError,
)
from backend.models.file import FILE_TYPE, FOLDER_TYPE, FileRecord
from backend.models.project import Project
from backend.services.datetime_service import format_iso, now_utc
from backend.services.file_service import (
    collect_descendants,
    content_digest,
    content_size,
    file_extension,
    find_by_id,
    find_by_path,
    join_path,
    mime_type_for,
    validate_name,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.remote.base import RemoteStore

logger = logging.getLogger(__name__)

_REMOTE_ERRORS = (RemoteUnavailableError, AuthExpiredError)

# Remote uploads of one file are serialized within this process.
_push_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()


def _push_lock(file_id: int) -> asyncio.Lock:
    lock = _push_locks.get(file_id)
    if lock is None:
        lock = asyncio.Lock()
        _push_locks[file_id] = lock
    return lock


class SyncStatus(StrEnum):
    """Reconciliation state between a file record and its remote copy."""

    SYNCED = "synced"
    SYNCING = "syncing"
    CONFLICT = "conflict"
    ERROR = "error"
    OFFLINE = "offline"


# A write always passes through SYNCING; a read may only move a record to
# SYNCED (after adopting the remote content).
_ALLOWED_TRANSITIONS: dict[SyncStatus, frozenset[SyncStatus]] = {
    SyncStatus.SYNCED: frozenset({SyncStatus.SYNCING, SyncStatus.SYNCED}),
    SyncStatus.SYNCING: frozenset(
        {SyncStatus.SYNCING, SyncStatus.SYNCED, SyncStatus.ERROR, SyncStatus.OFFLINE}
    ),
    SyncStatus.ERROR: frozenset({SyncStatus.SYNCING, SyncStatus.SYNCED}),
    SyncStatus.OFFLINE: frozenset({SyncStatus.SYNCING, SyncStatus.SYNCED}),
    SyncStatus.CONFLICT: frozenset({SyncStatus.SYNCING, SyncStatus.SYNCED}),
}


def can_transition(current: str, target: SyncStatus) -> bool:
    """Return True if the state machine allows ``current -> target``."""
    try:
        return target in _ALLOWED_TRANSITIONS[SyncStatus(current)]
    except ValueError:
        return False


def _transition(record: FileRecord, target: SyncStatus) -> None:
    if not can_transition(record.sync_status, target):
        msg = (
            f"Illegal sync transition {record.sync_status!r} -> {target.value!r} "
            f"for file {record.id}"
        )
        raise InternalServerError(msg)
    logger.debug("File %s sync status %s -> %s", record.id, record.sync_status, target.value)
    record.sync_status = target.value


def project_sync_status(statuses: Iterable[str]) -> SyncStatus:
    """Aggregate file statuses into a project status (worst state wins)."""
    present = set(statuses)
    for candidate in (
        SyncStatus.ERROR,
        SyncStatus.CONFLICT,
        SyncStatus.SYNCING,
        SyncStatus.OFFLINE,
    ):
        if candidate.value in present:
            return candidate
    return SyncStatus.SYNCED


async def refresh_project_sync_status(session: AsyncSession, project_id: int) -> SyncStatus:
    """Recompute and store a project's aggregate sync status (not committed)."""
    stmt = select(FileRecord.sync_status).where(
        FileRecord.project_id == project_id, FileRecord.type == FILE_TYPE
    )
    result = await session.execute(stmt)
    status = project_sync_status(result.scalars().all())
    project = await session.get(Project, project_id)
    if project is not None:
        project.sync_status = status.value
    return status


@dataclass
class ReadResult:
    """Resolved content of a read together with the (possibly refreshed) record."""

    content: str
    record: FileRecord
    warning: str | None = None


@dataclass
class DeleteResult:
    """Outcome of deleting a file or a folder subtree."""

    deleted_ids: list[int] = field(default_factory=list)
    remote_failures: list[str] = field(default_factory=list)


def _require_file(record: FileRecord | None, action: str) -> FileRecord:
    if record is None:
        raise NotFoundError("File not found")
    if record.type == FOLDER_TYPE:
        raise InvalidOperationError(f"Cannot {action} content of a folder")
    return record


async def read_content(
    session: AsyncSession,
    record: FileRecord | None,
    remote: RemoteStore | None,
) -> ReadResult:
    """Return a file's content, refreshing it from the remote store when possible.

    ``remote`` is None when the caller has no usable remote credential; the
    cached content is then returned with a warning.
    """
    record = _require_file(record, "read")
    local_content = record.content if record.content is not None else ""

    if remote is None:
        logger.warning("No remote credential for file %s; serving cached content", record.id)
        return ReadResult(
            content=local_content,
            record=record,
            warning="Remote store credentials unavailable; showing cached content",
        )

    try:
        remote_content = await remote.get_content(record.remote_id)
    except _REMOTE_ERRORS as exc:
        logger.warning(
            "Failed to fetch file %s from remote store, using local version: %s", record.id, exc
        )
        return ReadResult(
            content=local_content,
            record=record,
            warning="Remote store unreachable; showing cached content",
        )

    if remote_content != record.content and record.sync_status == SyncStatus.SYNCING.value:
        logger.info("File %s has an upload in flight; keeping local content", record.id)
        return ReadResult(content=local_content, record=record)

    if remote_content != record.content:
        logger.info("Remote content of file %s differs from cache; adopting remote", record.id)
        digest = content_digest(remote_content)
        now = format_iso(now_utc())
        record.content = remote_content
        record.local_hash = digest
        record.remote_hash = digest
        record.size = content_size(remote_content)
        record.updated_at = now
        record.last_synced_at = now
        _transition(record, SyncStatus.SYNCED)
        await refresh_project_sync_status(session, record.project_id)
        await session.commit()
        return ReadResult(content=remote_content, record=record)

    return ReadResult(content=local_content, record=record)


async def _settle(
    session: AsyncSession,
    record: FileRecord,
    pushed_version: int,
    target: SyncStatus,
    **values: str | None,
) -> bool:
    """Leave SYNCING for ``target`` unless a newer write has landed since."""
    stmt = (
        update(FileRecord)
        .where(
            FileRecord.id == record.id,
            FileRecord.version == pushed_version,
            FileRecord.sync_status == SyncStatus.SYNCING.value,
        )
        .values(sync_status=target.value, **values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.refresh(record)
    return result.rowcount == 1  # type: ignore[attr-defined]


async def write_content(
    session: AsyncSession,
    record: FileRecord | None,
    content: str | None,
    remote: RemoteStore | None,
) -> FileRecord:
    """Persist new content locally, then mirror it to the remote store.

    Remote failures are logged and reflected in ``sync_status`` only; the
    write is reported as successful once the local commit succeeded.

    Overlapping writes of one file each get their own version. Remote pushes
    of a file run one at a time, and a push whose version has been
    superseded is skipped; only the newest write may settle the status.
    """
    if content is None:
        raise ValueError("Content is required")
    record = _require_file(record, "write")
    if record.is_readonly:
        raise PermissionDeniedError("File is read-only")

    digest = content_digest(content)
    bump = (
        update(FileRecord)
        .where(FileRecord.id == record.id)
        .values(
            content=content,
            local_hash=digest,
            size=content_size(content),
            version=FileRecord.version + 1,
            sync_status=SyncStatus.SYNCING.value,
            updated_at=format_iso(now_utc()),
        )
        .execution_options(synchronize_session=False)
    )
    await session.execute(bump)
    await session.refresh(record)
    pushed_version = record.version
    await session.commit()

    async with _push_lock(record.id):
        await session.refresh(record)
        if record.version != pushed_version:
            logger.info(
                "File %s version %d superseded by %d before upload; skipping",
                record.id,
                pushed_version,
                record.version,
            )
            await session.commit()
            return record

        if remote is None:
            logger.warning("No remote credential; file %s saved locally only", record.id)
            settled = await _settle(session, record, pushed_version, SyncStatus.OFFLINE)
        else:
            try:
                await remote.update_file(record.remote_id, content, record.mime_type)
            except _REMOTE_ERRORS as exc:
                logger.error("Failed to sync file %s to remote store: %s", record.id, exc)
                settled = await _settle(
                    session, record, pushed_version, SyncStatus.ERROR
                )
            else:
                settled = await _settle(
                    session,
                    record,
                    pushed_version,
                    SyncStatus.SYNCED,
                    remote_hash=digest,
                    last_synced_at=format_iso(now_utc()),
                )
        if not settled:
            logger.info(
                "File %s was rewritten while version %d synced; newer write settles it",
                record.id,
                pushed_version,
            )

        await refresh_project_sync_status(session, record.project_id)
        await session.commit()
    return record


async def retry_sync(
    session: AsyncSession,
    record: FileRecord | None,
    remote: RemoteStore | None,
) -> FileRecord:
    """Manually re-push a file's current content through the write path."""
    record = _require_file(record, "sync")
    return await write_content(session, record, record.content or "", remote)


async def _resolve_parent(
    session: AsyncSession, project: Project, parent_id: int | None
) -> FileRecord | None:
    if parent_id is None:
        return None
    parent = await find_by_id(session, project.id, parent_id)
    if parent is None or parent.type != FOLDER_TYPE:
        raise NotFoundError("Parent folder not found")
    return parent


async def create_entry(
    session: AsyncSession,
    project: Project,
    remote: RemoteStore,
    *,
    name: str,
    entry_type: str,
    parent_id: int | None = None,
    content: str = "",
) -> FileRecord:
    """Provision a file or folder remotely, then record it locally.

    If the remote provisioning fails the error propagates and no local
    record is created.
    """
    validate_name(name)
    if entry_type not in (FILE_TYPE, FOLDER_TYPE):
        raise ValueError('Type must be either "file" or "folder"')
    parent = await _resolve_parent(session, project, parent_id)
    path = join_path(parent.path if parent else None, name)
    if await find_by_path(session, project.id, path) is not None:
        raise ConflictError("File or folder already exists at this path")

    remote_parent = parent.remote_id if parent else project.remote_folder_id
    mime_type = mime_type_for(name, entry_type)
    if entry_type == FOLDER_TYPE:
        remote_obj = await remote.create_folder(name, remote_parent)
    else:
        remote_obj = await remote.create_file(name, content, remote_parent, mime_type)

    now = format_iso(now_utc())
    is_file = entry_type == FILE_TYPE
    digest = content_digest(content) if is_file else None
    record = FileRecord(
        project_id=project.id,
        parent_id=parent.id if parent else None,
        name=name,
        path=path,
        type=entry_type,
        content=content if is_file else None,
        remote_id=remote_obj.id,
        local_hash=digest,
        remote_hash=digest,
        sync_status=SyncStatus.SYNCED.value,
        version=1,
        is_readonly=False,
        size=content_size(content) if is_file else 0,
        extension=file_extension(name) if is_file else "",
        mime_type=mime_type,
        created_at=now,
        updated_at=now,
        last_synced_at=now,
    )
    session.add(record)
    if is_file:
        project.file_count += 1
    project.updated_at = now
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("Concurrent create of %s in project %s: %s", path, project.id, exc)
        try:
            await remote.delete_file(remote_obj.id)
        except _REMOTE_ERRORS as cleanup_exc:
            logger.warning(
                "Failed to remove orphaned remote object %s: %s", remote_obj.id, cleanup_exc
            )
        raise ConflictError("File or folder already exists at this path") from exc

    logger.info("Created %s %s in project %s (id=%s)", entry_type, path, project.id, record.id)
    return record


async def delete_entry(
    session: AsyncSession,
    project: Project,
    record: FileRecord,
    remote: RemoteStore | None,
) -> DeleteResult:
    """Delete a file, or a folder with all its descendants (depth-first).

    Remote deletion is attempted for every entry and its failure is only
    logged; local records are always removed, children before parents.
    """
    targets = await collect_descendants(session, record) if record.is_folder else []
    targets.append(record)

    result = DeleteResult()
    removed_files = 0
    for target in targets:
        if remote is None:
            result.remote_failures.append(target.path)
        else:
            try:
                await remote.delete_file(target.remote_id)
            except _REMOTE_ERRORS as exc:
                logger.warning("Failed to delete %s from remote store: %s", target.path, exc)
                result.remote_failures.append(target.path)
        if not target.is_folder:
            removed_files += 1
        result.deleted_ids.append(target.id)
        await session.delete(target)
        await session.flush()

    project.file_count = max(0, project.file_count - removed_files)
    project.updated_at = format_iso(now_utc())
    await refresh_project_sync_status(session, project.id)
    await session.commit()
    logger.info(
        "Deleted %s (%d records, %d remote failures) from project %s",
        record.path,
        len(result.deleted_ids),
        len(result.remote_failures),
        project.id,
    )
    return result


async def _relocate(
    session: AsyncSession, record: FileRecord, new_path: str, now: str
) -> None:
    """Move ``record`` (and, for folders, its subtree) to ``new_path``."""
    old_prefix = record.path + "/"
    if record.is_folder:
        for descendant in await collect_descendants(session, record):
            descendant.path = new_path + "/" + descendant.path[len(old_prefix) :]
            descendant.updated_at = now
    record.path = new_path
    record.updated_at = now


async def rename_entry(
    session: AsyncSession,
    project: Project,
    record: FileRecord,
    new_name: str,
    remote: RemoteStore,
) -> FileRecord:
    """Rename a file or folder remotely, then update local paths."""
    validate_name(new_name)
    if new_name == record.name:
        return record

    parent_path = record.path.rsplit("/", 1)[0] or None
    new_path = join_path(parent_path, new_name)
    if await find_by_path(session, project.id, new_path) is not None:
        raise ConflictError("File or folder already exists at this path")

    await remote.rename_file(record.remote_id, new_name)

    now = format_iso(now_utc())
    await _relocate(session, record, new_path, now)
    record.name = new_name
    if not record.is_folder:
        record.extension = file_extension(new_name)
        record.mime_type = mime_type_for(new_name, record.type)
    await session.commit()
    logger.info("Renamed file %s to %s in project %s", record.id, new_path, project.id)
    return record


async def move_entry(
    session: AsyncSession,
    project: Project,
    record: FileRecord,
    new_parent_id: int | None,
    remote: RemoteStore,
) -> FileRecord:
    """Move a file or folder under another folder (or the project root)."""
    new_parent = await _resolve_parent(session, project, new_parent_id)
    if record.is_folder and new_parent is not None and (
        new_parent.id == record.id or new_parent.path.startswith(record.path + "/")
    ):
        raise InvalidOperationError("Cannot move a folder into itself or one of its descendants")
    if (new_parent.id if new_parent else None) == record.parent_id:
        return record

    new_path = join_path(new_parent.path if new_parent else None, record.name)
    if await find_by_path(session, project.id, new_path) is not None:
        raise ConflictError("File or folder already exists at this path")

    old_parent = (
        await find_by_id(session, project.id, record.parent_id) if record.parent_id else None
    )
    old_remote_parent = old_parent.remote_id if old_parent else project.remote_folder_id
    new_remote_parent = new_parent.remote_id if new_parent else project.remote_folder_id
    await remote.move_file(record.remote_id, new_remote_parent, old_remote_parent)

    now = format_iso(now_utc())
    await _relocate(session, record, new_path, now)
    record.parent_id = new_parent.id if new_parent else None
    await session.commit()
    logger.info("Moved file %s to %s in project %s", record.id, new_path, project.id)
    return record
