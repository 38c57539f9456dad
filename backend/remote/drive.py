"""Google Drive (REST v3) implementation of the remote store."""

from __future__ import annotations

import json
import logging
import secrets
from typing import TYPE_CHECKING, Any

import httpx

from backend.exceptions import AuthExpiredError, RemoteUnavailableError
from backend.remote.base import FOLDER_MIME_TYPE, DriveCredentials, RemoteObject

if TYPE_CHECKING:
    from backend.config import Settings
    from backend.remote.base import RemoteStoreFactory

logger = logging.getLogger(__name__)

_OBJECT_FIELDS = "id, name, mimeType, size, md5Checksum, parents, modifiedTime"


def _escape_query_value(value: str) -> str:
    """Escape a literal for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _to_remote_object(data: dict[str, Any]) -> RemoteObject:
    size = data.get("size")
    return RemoteObject(
        id=str(data["id"]),
        name=data.get("name", ""),
        mime_type=data.get("mimeType", ""),
        size=int(size) if size is not None else None,
        md5=data.get("md5Checksum"),
        parents=tuple(data.get("parents", ())),
        modified_time=data.get("modifiedTime"),
    )


class GoogleDriveClient:
    """Drive client bound to a single credential.

    Instances are cheap and hold no connection state; build one per request
    from the caller's credential instead of sharing a handle between users.
    """

    def __init__(
        self,
        credentials: DriveCredentials,
        *,
        api_url: str = "https://www.googleapis.com/drive/v3",
        upload_url: str = "https://www.googleapis.com/upload/drive/v3",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._api_url = api_url.rstrip("/")
        self._upload_url = upload_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        request_headers = {"Authorization": f"Bearer {self._credentials.access_token}"}
        if headers:
            request_headers.update(headers)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as http_client:
                response = await http_client.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    content=content,
                    headers=request_headers,
                )
        except httpx.HTTPError as exc:
            logger.warning("Drive %s %s failed: %s", method, url, exc)
            raise RemoteUnavailableError(f"Drive request failed: {exc}") from exc

        if response.status_code == 401:
            raise AuthExpiredError("Drive rejected the access token. Please re-authenticate.")
        if response.status_code >= 400:
            logger.warning(
                "Drive %s %s returned HTTP %d: %s",
                method,
                url,
                response.status_code,
                response.text[:200],
            )
            raise RemoteUnavailableError(f"Drive returned HTTP {response.status_code}")
        return response

    async def create_folder(self, name: str, parent_id: str | None) -> RemoteObject:
        metadata: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            metadata["parents"] = [parent_id]
        response = await self._request(
            "POST",
            f"{self._api_url}/files",
            params={"fields": _OBJECT_FIELDS},
            json_body=metadata,
        )
        folder = _to_remote_object(response.json())
        logger.info("Folder created in Drive: %s (%s)", name, folder.id)
        return folder

    async def create_file(
        self, name: str, content: str, parent_id: str, mime_type: str
    ) -> RemoteObject:
        boundary = f"ai-ide-{secrets.token_hex(12)}"
        metadata = json.dumps({"name": name, "parents": [parent_id], "mimeType": mime_type})
        body = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{metadata}\r\n"
            f"--{boundary}\r\n"
            f"Content-Type: {mime_type}\r\n\r\n"
            f"{content}\r\n"
            f"--{boundary}--\r\n"
        ).encode("utf-8")
        response = await self._request(
            "POST",
            f"{self._upload_url}/files",
            params={"uploadType": "multipart", "fields": _OBJECT_FIELDS},
            content=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        created = _to_remote_object(response.json())
        logger.info("File created in Drive: %s (%s, %s bytes)", name, created.id, created.size)
        return created

    async def update_file(self, file_id: str, content: str, mime_type: str) -> RemoteObject:
        response = await self._request(
            "PATCH",
            f"{self._upload_url}/files/{file_id}",
            params={"uploadType": "media", "fields": _OBJECT_FIELDS},
            content=content.encode("utf-8"),
            headers={"Content-Type": mime_type},
        )
        updated = _to_remote_object(response.json())
        logger.info("File updated in Drive: %s (%s bytes)", file_id, updated.size)
        return updated

    async def get_content(self, file_id: str) -> str:
        response = await self._request(
            "GET",
            f"{self._api_url}/files/{file_id}",
            params={"alt": "media"},
        )
        try:
            return response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RemoteUnavailableError(f"Drive file {file_id} is not valid UTF-8 text") from exc

    async def delete_file(self, file_id: str) -> None:
        await self._request("DELETE", f"{self._api_url}/files/{file_id}")
        logger.info("Deleted from Drive: %s", file_id)

    async def rename_file(self, file_id: str, new_name: str) -> RemoteObject:
        response = await self._request(
            "PATCH",
            f"{self._api_url}/files/{file_id}",
            params={"fields": _OBJECT_FIELDS},
            json_body={"name": new_name},
        )
        logger.info("Renamed in Drive: %s -> %s", file_id, new_name)
        return _to_remote_object(response.json())

    async def move_file(
        self, file_id: str, new_parent_id: str, old_parent_id: str
    ) -> RemoteObject:
        response = await self._request(
            "PATCH",
            f"{self._api_url}/files/{file_id}",
            params={
                "addParents": new_parent_id,
                "removeParents": old_parent_id,
                "fields": _OBJECT_FIELDS,
            },
            json_body={},
        )
        logger.info("Moved in Drive: %s from %s to %s", file_id, old_parent_id, new_parent_id)
        return _to_remote_object(response.json())

    async def list_files(self, parent_id: str) -> list[RemoteObject]:
        response = await self._request(
            "GET",
            f"{self._api_url}/files",
            params={
                "q": f"'{_escape_query_value(parent_id)}' in parents and trashed=false",
                "fields": f"files({_OBJECT_FIELDS})",
                "orderBy": "folder,name",
                "pageSize": "100",
            },
        )
        return [_to_remote_object(item) for item in response.json().get("files", [])]

    async def get_or_create_root_folder(self, name: str) -> RemoteObject:
        response = await self._request(
            "GET",
            f"{self._api_url}/files",
            params={
                "q": (
                    f"name='{_escape_query_value(name)}' and "
                    f"mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
                ),
                "fields": f"files({_OBJECT_FIELDS})",
            },
        )
        existing = response.json().get("files", [])
        if existing:
            return _to_remote_object(existing[0])
        return await self.create_folder(name, None)


def drive_client_factory(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RemoteStoreFactory:
    """Return a factory producing per-credential Drive clients."""

    def build(credentials: DriveCredentials) -> GoogleDriveClient:
        return GoogleDriveClient(
            credentials,
            api_url=settings.drive_api_url,
            upload_url=settings.drive_upload_url,
            timeout=settings.drive_timeout_seconds,
            transport=transport,
        )

    return build
