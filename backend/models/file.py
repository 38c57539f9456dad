"""File record model (files and folders)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base

if TYPE_CHECKING:
    from backend.models.project import Project

FILE_TYPE = "file"
FOLDER_TYPE = "folder"


class FileRecord(Base):
    """Local record of a file or folder and its sync state with the remote store.

    ``content`` is NULL for folders and a string (possibly empty) for files.
    ``sync_status`` is owned by ``backend.services.sync_service``.
    """

    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    remote_id: Mapped[str] = mapped_column(String, nullable=False)
    local_hash: Mapped[str | None] = mapped_column(String(32), nullable=True)
    remote_hash: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sync_status: Mapped[str] = mapped_column(String, nullable=False, default="synced")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_readonly: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extension: Mapped[str] = mapped_column(String, nullable=False, default="")
    mime_type: Mapped[str] = mapped_column(String, nullable=False)
    encoding: Mapped[str] = mapped_column(String, nullable=False, default="utf-8")
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)
    last_synced_at: Mapped[str | None] = mapped_column(Text, nullable=True)

    project: Mapped[Project] = relationship(back_populates="files")

    __table_args__ = (
        UniqueConstraint("project_id", "path", name="uq_files_project_path"),
        Index("idx_files_project_parent", "project_id", "parent_id"),
    )

    @property
    def is_folder(self) -> bool:
        return self.type == FOLDER_TYPE
