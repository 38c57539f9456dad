"""File and folder schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from backend.schemas.common import Envelope

SyncStatusValue = Literal["synced", "syncing", "conflict", "error", "offline"]


class FileMetadata(BaseModel):
    """Metadata returned alongside file content and after writes."""

    id: int
    name: str
    path: str
    type: Literal["file", "folder"]
    size: int = Field(ge=0)
    extension: str
    language: str
    mime_type: str
    encoding: str = "utf-8"
    sync_status: SyncStatusValue
    version: int = Field(ge=1)
    is_readonly: bool = False
    last_modified: str
    last_synced_at: str | None = None


class FileTreeNode(BaseModel):
    """One node of a project's file tree."""

    id: int
    name: str
    path: str
    type: Literal["file", "folder"]
    parent_id: int | None = None
    size: int = 0
    extension: str = ""
    sync_status: SyncStatusValue
    children: list[FileTreeNode] = Field(default_factory=list)


class FileTreeResponse(Envelope):
    """Project file tree."""

    project_id: int
    file_tree: list[FileTreeNode]


class FileContentResponse(Envelope):
    """Content read result."""

    content: str
    metadata: FileMetadata
    warning: str | None = None


class FileWriteRequest(BaseModel):
    """Content write request. ``content`` must be present; empty string is valid."""

    content: str | None = None


class FileWriteResponse(Envelope):
    """Content write result; ``metadata.sync_status`` reports the remote outcome."""

    metadata: FileMetadata


class FileCreateRequest(BaseModel):
    """Create a file or folder under ``parent_id`` (project root when omitted)."""

    name: str = Field(min_length=1, max_length=255)
    type: Literal["file", "folder"]
    parent_id: int | None = None
    content: str = ""


class FileCreateResponse(Envelope):
    """Created file or folder."""

    file: FileMetadata


class FileRenameRequest(BaseModel):
    """Rename a file or folder in place."""

    name: str = Field(min_length=1, max_length=255)


class FileMoveRequest(BaseModel):
    """Move a file or folder under a new parent (project root when null)."""

    parent_id: int | None = None


class FileUpdateResponse(Envelope):
    """Result of a rename or move."""

    file: FileMetadata


class DeletedFile(BaseModel):
    """Summary of a deleted entry."""

    id: int
    name: str
    type: Literal["file", "folder"]


class FileDeleteResponse(Envelope):
    """Delete result, including descendants removed and remote failures."""

    deleted_file: DeletedFile
    deleted_count: int = Field(ge=1)
    remote_failures: list[str] = Field(default_factory=list)
