"""In-memory remote store used by service and API tests."""

from __future__ import annotations

import hashlib
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field

from backend.exceptions import RemoteUnavailableError
from backend.remote.base import FOLDER_MIME_TYPE, DriveCredentials, RemoteObject


@dataclass
class StoredObject:
    id: str
    name: str
    mime_type: str
    parent_id: str | None
    content: str | None = None


@dataclass
class InMemoryRemoteStore:
    """Remote store keeping objects in a dict.

    ``failing`` names operations that raise RemoteUnavailableError;
    ``failing_ids`` makes operations on specific object IDs fail and
    ``failing_names`` makes file creation fail for specific names.
    The instance is also its own factory (``store(credentials) -> store``).
    """

    objects: dict[str, StoredObject] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    failing_ids: set[str] = field(default_factory=set)
    failing_names: set[str] = field(default_factory=set)
    calls: list[tuple[str, str]] = field(default_factory=list)
    credentials_seen: list[DriveCredentials] = field(default_factory=list)
    before_update: Callable[[str], None] | None = None
    _ids: itertools.count[int] = field(default_factory=lambda: itertools.count(1))

    def __call__(self, credentials: DriveCredentials) -> InMemoryRemoteStore:
        self.credentials_seen.append(credentials)
        return self

    def _check(self, op: str, object_id: str = "") -> None:
        self.calls.append((op, object_id))
        if op in self.failing or object_id in self.failing_ids:
            raise RemoteUnavailableError(f"Simulated failure of {op} {object_id}".strip())

    def _new_id(self) -> str:
        return f"remote-{next(self._ids)}"

    def _to_remote(self, obj: StoredObject) -> RemoteObject:
        data = obj.content.encode("utf-8") if obj.content is not None else None
        return RemoteObject(
            id=obj.id,
            name=obj.name,
            mime_type=obj.mime_type,
            size=len(data) if data is not None else None,
            md5=hashlib.md5(data).hexdigest() if data is not None else None,
            parents=(obj.parent_id,) if obj.parent_id else (),
        )

    def _get(self, object_id: str) -> StoredObject:
        try:
            return self.objects[object_id]
        except KeyError:
            raise RemoteUnavailableError(f"Drive returned HTTP 404 for {object_id}") from None

    def put_content(self, object_id: str, content: str) -> None:
        """Change a file behind the application's back."""
        self.objects[object_id].content = content

    async def create_folder(self, name: str, parent_id: str | None) -> RemoteObject:
        self._check("create_folder", parent_id or "")
        obj = StoredObject(self._new_id(), name, FOLDER_MIME_TYPE, parent_id)
        self.objects[obj.id] = obj
        return self._to_remote(obj)

    async def create_file(
        self, name: str, content: str, parent_id: str, mime_type: str
    ) -> RemoteObject:
        self._check("create_file", parent_id)
        if name in self.failing_names:
            raise RemoteUnavailableError(f"Simulated failure creating {name}")
        obj = StoredObject(self._new_id(), name, mime_type, parent_id, content)
        self.objects[obj.id] = obj
        return self._to_remote(obj)

    async def update_file(self, file_id: str, content: str, mime_type: str) -> RemoteObject:
        if self.before_update is not None:
            self.before_update(file_id)
        self._check("update_file", file_id)
        obj = self._get(file_id)
        obj.content = content
        obj.mime_type = mime_type
        return self._to_remote(obj)

    async def get_content(self, file_id: str) -> str:
        self._check("get_content", file_id)
        return self._get(file_id).content or ""

    async def delete_file(self, file_id: str) -> None:
        self._check("delete_file", file_id)
        self.objects.pop(file_id, None)

    async def rename_file(self, file_id: str, new_name: str) -> RemoteObject:
        self._check("rename_file", file_id)
        obj = self._get(file_id)
        obj.name = new_name
        return self._to_remote(obj)

    async def move_file(
        self, file_id: str, new_parent_id: str, old_parent_id: str
    ) -> RemoteObject:
        self._check("move_file", file_id)
        obj = self._get(file_id)
        assert obj.parent_id == old_parent_id, f"{file_id} is not under {old_parent_id}"
        obj.parent_id = new_parent_id
        return self._to_remote(obj)

    async def list_files(self, parent_id: str) -> list[RemoteObject]:
        self._check("list_files", parent_id)
        children = [o for o in self.objects.values() if o.parent_id == parent_id]
        children.sort(key=lambda o: (o.mime_type != FOLDER_MIME_TYPE, o.name))
        return [self._to_remote(o) for o in children]

    async def get_or_create_root_folder(self, name: str) -> RemoteObject:
        self._check("get_or_create_root_folder", name)
        for obj in self.objects.values():
            if obj.parent_id is None and obj.name == name and obj.mime_type == FOLDER_MIME_TYPE:
                return self._to_remote(obj)
        return await self.create_folder(name, None)
