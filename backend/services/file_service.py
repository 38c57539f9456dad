"""File record store: project-scoped lookups, path derivation and tree assembly."""

from __future__ import annotations

import hashlib
import posixpath
from typing import TYPE_CHECKING

from sqlalchemy import select

from backend.exceptions import NotFoundError
from backend.models.file import FOLDER_TYPE, FileRecord
from backend.models.project import Project
from backend.remote.base import FOLDER_MIME_TYPE
from backend.schemas.file import FileMetadata, FileTreeNode

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

_LANGUAGE_BY_EXTENSION: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "c": "c",
    "h": "c",
    "cpp": "cpp",
    "hpp": "cpp",
    "cs": "csharp",
    "go": "go",
    "rs": "rust",
    "rb": "ruby",
    "php": "php",
    "html": "html",
    "htm": "html",
    "css": "css",
    "scss": "scss",
    "json": "json",
    "md": "markdown",
    "yml": "yaml",
    "yaml": "yaml",
    "xml": "xml",
    "sql": "sql",
    "sh": "shell",
    "toml": "toml",
    "txt": "plaintext",
}

_MIME_BY_EXTENSION: dict[str, str] = {
    "js": "text/javascript",
    "mjs": "text/javascript",
    "py": "text/x-python",
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "json": "application/json",
    "md": "text/markdown",
    "xml": "application/xml",
}


def validate_name(name: str) -> str:
    """Return ``name`` if usable as a single path segment, else raise ValueError."""
    if not name or name.strip() != name:
        raise ValueError("Name must be non-empty without leading or trailing whitespace")
    if "/" in name or "\\" in name:
        raise ValueError("Name must not contain path separators")
    if name in {".", ".."}:
        raise ValueError("Name must not be '.' or '..'")
    return name


def join_path(parent_path: str | None, name: str) -> str:
    """Build a record path from its parent's path (None for the project root)."""
    if parent_path is None:
        return f"/{name}"
    return f"{parent_path.rstrip('/')}/{name}"


def normalize_path(path: str) -> str:
    """Normalize a client-supplied path to the stored ``/a/b`` form."""
    normalized = posixpath.normpath("/" + path.strip().lstrip("/"))
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def file_extension(name: str) -> str:
    """Lower-case extension without the dot; empty for dotfiles and extensionless names."""
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return ""
    return ext.lower()


def language_for(name: str) -> str:
    """Editor language hint derived from the file extension."""
    return _LANGUAGE_BY_EXTENSION.get(file_extension(name), "plaintext")


def mime_type_for(name: str, entry_type: str) -> str:
    if entry_type == FOLDER_TYPE:
        return FOLDER_MIME_TYPE
    return _MIME_BY_EXTENSION.get(file_extension(name), "text/plain")


def content_digest(content: str) -> str:
    """MD5 hex digest of UTF-8 content (comparable with Drive's md5Checksum)."""
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def content_size(content: str) -> int:
    return len(content.encode("utf-8"))


def to_metadata(record: FileRecord) -> FileMetadata:
    """Build the API metadata view of a record."""
    return FileMetadata(
        id=record.id,
        name=record.name,
        path=record.path,
        type=record.type,  # type: ignore[arg-type]
        size=record.size,
        extension=record.extension,
        language=language_for(record.name),
        mime_type=record.mime_type,
        encoding=record.encoding,
        sync_status=record.sync_status,  # type: ignore[arg-type]
        version=record.version,
        is_readonly=record.is_readonly,
        last_modified=record.updated_at,
        last_synced_at=record.last_synced_at,
    )


async def get_owned_project(session: AsyncSession, project_id: int, owner_id: int) -> Project:
    """Load a project owned by ``owner_id``.

    Missing and foreign projects both raise NotFoundError so that callers
    cannot probe for other users' project IDs.
    """
    stmt = select(Project).where(Project.id == project_id, Project.owner_id == owner_id)
    result = await session.execute(stmt)
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def find_by_id(session: AsyncSession, project_id: int, file_id: int) -> FileRecord | None:
    """Find a record by ID within one project."""
    stmt = select(FileRecord).where(FileRecord.project_id == project_id, FileRecord.id == file_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def find_by_path(session: AsyncSession, project_id: int, path: str) -> FileRecord | None:
    """Find a record by path within one project."""
    stmt = select(FileRecord).where(
        FileRecord.project_id == project_id, FileRecord.path == normalize_path(path)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_file(
    session: AsyncSession,
    project_id: int,
    *,
    file_id: int | None = None,
    path: str | None = None,
) -> FileRecord:
    """Resolve a record by ID or path; raises NotFoundError when absent."""
    if file_id is not None:
        record = await find_by_id(session, project_id, file_id)
    elif path is not None:
        record = await find_by_path(session, project_id, path)
    else:
        raise ValueError("File path or file_id is required")
    if record is None:
        raise NotFoundError("File not found")
    return record


async def list_project_files(session: AsyncSession, project_id: int) -> list[FileRecord]:
    """All records of a project, ordered by path."""
    stmt = select(FileRecord).where(FileRecord.project_id == project_id).order_by(FileRecord.path)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_children(
    session: AsyncSession, project_id: int, parent_id: int | None
) -> list[FileRecord]:
    """Direct children of a folder (or root-level records when ``parent_id`` is None)."""
    parent_clause = (
        FileRecord.parent_id.is_(None) if parent_id is None else FileRecord.parent_id == parent_id
    )
    stmt = (
        select(FileRecord)
        .where(FileRecord.project_id == project_id, parent_clause)
        .order_by(FileRecord.id)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def collect_descendants(session: AsyncSession, folder: FileRecord) -> list[FileRecord]:
    """Every descendant of ``folder``, depth-first with children before their parents."""
    ordered: list[FileRecord] = []
    for child in await list_children(session, folder.project_id, folder.id):
        if child.is_folder:
            ordered.extend(await collect_descendants(session, child))
        ordered.append(child)
    return ordered


def _tree_sort_key(record: FileRecord) -> tuple[int, str, str, int]:
    return (0 if record.type == FOLDER_TYPE else 1, record.name.casefold(), record.name, record.id)


def build_file_tree(records: Iterable[FileRecord]) -> list[FileTreeNode]:
    """Assemble a nested tree from a project's flat record list.

    Siblings are ordered folders first, then by case-folded name, then by
    name and ID, so the result depends only on the input set. Records whose
    parent is missing from the input are attached at the root.
    """
    records = list(records)
    known_ids = {r.id for r in records}
    by_parent: dict[int | None, list[FileRecord]] = {}
    for record in records:
        parent = record.parent_id if record.parent_id in known_ids else None
        by_parent.setdefault(parent, []).append(record)

    def build(parent_id: int | None, seen: frozenset[int]) -> list[FileTreeNode]:
        nodes: list[FileTreeNode] = []
        for record in sorted(by_parent.get(parent_id, []), key=_tree_sort_key):
            if record.id in seen:
                continue
            nodes.append(
                FileTreeNode(
                    id=record.id,
                    name=record.name,
                    path=record.path,
                    type=record.type,  # type: ignore[arg-type]
                    parent_id=record.parent_id,
                    size=record.size,
                    extension=record.extension,
                    sync_status=record.sync_status,  # type: ignore[arg-type]
                    children=build(record.id, seen | {record.id}),
                )
            )
        return nodes

    return build(None, frozenset())
