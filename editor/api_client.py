"""Async HTTP client for the AI-IDE backend."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-success response from the backend."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.code = code

    @property
    def needs_drive_auth(self) -> bool:
        return self.code in {"DRIVE_AUTH_REQUIRED", "DRIVE_AUTH_EXPIRED"}


def _raise_for_envelope(resp: httpx.Response) -> dict[str, Any]:
    try:
        data: dict[str, Any] = resp.json()
    except ValueError:
        data = {}
    if resp.is_success and data.get("success", True):
        return data
    message = data.get("message") or resp.reason_phrase or "Request failed"
    raise ApiError(resp.status_code, str(message), data.get("code"))


class IdeApiClient:
    """Thin wrapper over the ``/api/v1`` endpoints."""

    def __init__(
        self,
        server_url: str,
        token: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.AsyncClient(
            base_url=server_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> IdeApiClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def _call(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        resp = await self.client.request(method, url, **kwargs)
        return _raise_for_envelope(resp)

    async def login(self, username: str, password: str) -> str:
        """Login, remember the access token and return it."""
        data = await self._call(
            "POST", "/api/v1/auth/login", json={"username": username, "password": password}
        )
        token: str = data["access_token"]
        self.client.headers["Authorization"] = f"Bearer {token}"
        return token

    async def list_projects(self) -> list[dict[str, Any]]:
        data = await self._call("GET", "/api/v1/projects")
        projects: list[dict[str, Any]] = data["projects"]
        return projects

    async def create_project(
        self, name: str, description: str = "", language: str = "javascript"
    ) -> dict[str, Any]:
        return await self._call(
            "POST",
            "/api/v1/projects",
            json={"name": name, "description": description, "language": language},
        )

    async def get_project(self, project_id: int) -> dict[str, Any]:
        return await self._call("GET", f"/api/v1/projects/{project_id}")

    async def file_tree(self, project_id: int) -> list[dict[str, Any]]:
        data = await self._call("GET", f"/api/v1/files/{project_id}/files")
        tree: list[dict[str, Any]] = data["file_tree"]
        return tree

    async def read_file(self, project_id: int, file_id: int) -> dict[str, Any]:
        """Return ``{content, metadata, warning}`` for a file."""
        return await self._call(
            "GET", f"/api/v1/files/{project_id}/content", params={"file_id": file_id}
        )

    async def write_file(self, project_id: int, file_id: int, content: str) -> dict[str, Any]:
        """Save content; returns the updated metadata including ``sync_status``."""
        data = await self._call(
            "PUT",
            f"/api/v1/files/{project_id}/content",
            params={"file_id": file_id},
            json={"content": content},
        )
        metadata: dict[str, Any] = data["metadata"]
        return metadata

    async def create_file(
        self,
        project_id: int,
        name: str,
        entry_type: str = "file",
        parent_id: int | None = None,
        content: str = "",
    ) -> dict[str, Any]:
        data = await self._call(
            "POST",
            f"/api/v1/files/{project_id}/create",
            json={"name": name, "type": entry_type, "parent_id": parent_id, "content": content},
        )
        created: dict[str, Any] = data["file"]
        return created

    async def rename_file(self, project_id: int, file_id: int, name: str) -> dict[str, Any]:
        data = await self._call(
            "POST", f"/api/v1/files/{project_id}/{file_id}/rename", json={"name": name}
        )
        renamed: dict[str, Any] = data["file"]
        return renamed

    async def move_file(
        self, project_id: int, file_id: int, parent_id: int | None
    ) -> dict[str, Any]:
        data = await self._call(
            "POST", f"/api/v1/files/{project_id}/{file_id}/move", json={"parent_id": parent_id}
        )
        moved: dict[str, Any] = data["file"]
        return moved

    async def delete_file(self, project_id: int, file_id: int) -> dict[str, Any]:
        return await self._call("DELETE", f"/api/v1/files/{project_id}/{file_id}")

    async def sync_status(self, project_id: int) -> dict[str, Any]:
        return await self._call("GET", f"/api/v1/sync/{project_id}/status")

    async def retry_sync(self, project_id: int, file_id: int) -> dict[str, Any]:
        data = await self._call("POST", f"/api/v1/sync/{project_id}/{file_id}/retry")
        metadata: dict[str, Any] = data["metadata"]
        return metadata


class ProjectFiles:
    """File access scoped to one project, as consumed by ``EditorSession``."""

    def __init__(self, api: IdeApiClient, project_id: int) -> None:
        self.api = api
        self.project_id = project_id

    async def read_file(self, file_id: int) -> dict[str, Any]:
        return await self.api.read_file(self.project_id, file_id)

    async def write_file(self, file_id: int, content: str) -> dict[str, Any]:
        return await self.api.write_file(self.project_id, file_id, content)
