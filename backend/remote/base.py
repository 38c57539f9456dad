"""Remote store protocol and data classes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


@dataclass(frozen=True)
class DriveCredentials:
    """Bearer credential for a single remote-store session."""

    access_token: str


@dataclass
class RemoteObject:
    """Metadata of an object in the remote store."""

    id: str
    name: str = ""
    mime_type: str = ""
    size: int | None = None
    md5: str | None = None
    parents: tuple[str, ...] = ()
    modified_time: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


@runtime_checkable
class RemoteStore(Protocol):
    """Hierarchical object store addressed by opaque IDs.

    Every method raises ``RemoteUnavailableError`` on transport or server
    failure and ``AuthExpiredError`` when the credential is rejected.
    """

    async def create_folder(self, name: str, parent_id: str | None) -> RemoteObject:
        """Create a folder under ``parent_id`` (or at the store root)."""
        ...

    async def create_file(
        self, name: str, content: str, parent_id: str, mime_type: str
    ) -> RemoteObject:
        """Create a file with initial content."""
        ...

    async def update_file(self, file_id: str, content: str, mime_type: str) -> RemoteObject:
        """Replace a file's content."""
        ...

    async def get_content(self, file_id: str) -> str:
        """Download a file's content as text."""
        ...

    async def delete_file(self, file_id: str) -> None:
        """Delete a file or folder."""
        ...

    async def rename_file(self, file_id: str, new_name: str) -> RemoteObject:
        """Rename a file or folder."""
        ...

    async def move_file(
        self, file_id: str, new_parent_id: str, old_parent_id: str
    ) -> RemoteObject:
        """Move a file or folder to another parent."""
        ...

    async def list_files(self, parent_id: str) -> list[RemoteObject]:
        """List the non-trashed children of a folder."""
        ...

    async def get_or_create_root_folder(self, name: str) -> RemoteObject:
        """Find the top-level folder named ``name``, creating it if absent."""
        ...


class RemoteStoreFactory(Protocol):
    """Builds a remote store bound to one credential."""

    def __call__(self, credentials: DriveCredentials) -> RemoteStore: ...
