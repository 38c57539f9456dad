"""Sync status schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from backend.schemas.common import Envelope
from backend.schemas.file import FileMetadata, SyncStatusValue


class FileSyncState(BaseModel):
    """Sync state of one file."""

    id: int
    path: str
    sync_status: SyncStatusValue
    version: int
    last_synced_at: str | None = None


class ProjectSyncStatusResponse(Envelope):
    """Aggregate and per-file sync state of a project."""

    project_id: int
    sync_status: SyncStatusValue
    counts: dict[str, int] = Field(default_factory=dict)
    files: list[FileSyncState] = Field(default_factory=list)


class RetrySyncResponse(Envelope):
    """Result of a manual sync retry."""

    metadata: FileMetadata


class RemoteEntry(BaseModel):
    """An object listed from the project's remote folder."""

    id: str
    name: str
    mime_type: str
    is_folder: bool
    size: int | None = None
    md5: str | None = None
    modified_time: str | None = None
    tracked: bool = False


class RemoteListingResponse(Envelope):
    """Children of a remote folder, marked with whether a local record tracks them."""

    project_id: int
    folder_id: str
    entries: list[RemoteEntry] = Field(default_factory=list)
