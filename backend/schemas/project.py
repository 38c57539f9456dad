"""Project schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from backend.schemas.common import Envelope
from backend.schemas.file import FileTreeNode

TemplateLanguage = Literal["javascript", "python", "html"]


class ProjectCreate(BaseModel):
    """Request to create a project."""

    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=2000)
    language: TemplateLanguage = "javascript"

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        """Strip whitespace and reject blank names."""
        _ = cls
        stripped = v.strip()
        if not stripped:
            raise ValueError("Project name is required")
        if "/" in stripped:
            raise ValueError("Project name must not contain '/'")
        return stripped


class ProjectUpdate(BaseModel):
    """Request to update a project's name and/or description."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str | None) -> str | None:
        """Strip whitespace and reject blank names."""
        _ = cls
        if v is None:
            return None
        stripped = v.strip()
        if not stripped:
            raise ValueError("Project name must not be blank")
        if "/" in stripped:
            raise ValueError("Project name must not contain '/'")
        return stripped


class ProjectInfo(BaseModel):
    """Project summary."""

    id: int
    name: str
    description: str
    language: str
    remote_folder_id: str
    file_count: int = Field(ge=0)
    sync_status: str
    last_accessed_at: str
    created_at: str
    updated_at: str


class TemplateFileOutcome(BaseModel):
    """Per-file result of provisioning a project's template files."""

    name: str
    path: str
    created: bool
    file_id: int | None = None
    error: str | None = None


class ProjectCreateResponse(Envelope):
    """Created project and the outcome of each template file."""

    project: ProjectInfo
    files: list[TemplateFileOutcome] = Field(default_factory=list)


class ProjectResponse(Envelope):
    """Single project, optionally with its file tree."""

    project: ProjectInfo
    file_tree: list[FileTreeNode] | None = None


class ProjectListResponse(Envelope):
    """User's projects, most recently accessed first."""

    projects: list[ProjectInfo]


class ProjectDeleteResponse(Envelope):
    """Delete result."""

    id: int
    name: str
    remote_deleted: bool
