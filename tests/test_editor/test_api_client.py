"""Tests for the backend HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest

from editor.api_client import ApiError, IdeApiClient, ProjectFiles


def _client(transport: httpx.MockTransport, token: str | None = "tok") -> IdeApiClient:
    return IdeApiClient("http://ide.test/", token, transport=transport)


class TestEnvelopes:
    async def test_success_payload_is_returned(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer tok"
            return httpx.Response(
                200, json={"success": True, "message": "", "projects": [{"id": 1}]}
            )

        async with _client(httpx.MockTransport(handler)) as api:
            assert await api.list_projects() == [{"id": 1}]

    async def test_error_envelope_raises_api_error(self) -> None:
        transport = httpx.MockTransport(
            lambda _req: httpx.Response(
                401,
                json={
                    "success": False,
                    "message": "Google Drive access token not found. Please re-authenticate.",
                    "error": "AuthRequiredError",
                    "code": "DRIVE_AUTH_REQUIRED",
                },
            )
        )

        async with _client(transport) as api:
            with pytest.raises(ApiError) as exc_info:
                await api.create_project("calc")

        assert exc_info.value.status_code == 401
        assert exc_info.value.needs_drive_auth
        assert exc_info.value.message.startswith("Google Drive access token not found")

    async def test_non_json_error_uses_reason_phrase(self) -> None:
        transport = httpx.MockTransport(lambda _req: httpx.Response(502, text="<html>"))

        async with _client(transport) as api:
            with pytest.raises(ApiError, match="HTTP 502: Bad Gateway"):
                await api.sync_status(1)

    async def test_other_errors_do_not_need_drive_auth(self) -> None:
        assert not ApiError(404, "Project not found").needs_drive_auth


class TestRequests:
    async def test_login_stores_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/api/v1/auth/login":
                return httpx.Response(200, json={"access_token": "fresh"})
            return httpx.Response(200, json={"projects": []})

        async with _client(httpx.MockTransport(handler), token=None) as api:
            assert await api.login("alice", "pw") == "fresh"
            await api.list_projects()

        assert json.loads(seen[0].content) == {"username": "alice", "password": "pw"}
        assert seen[1].headers["Authorization"] == "Bearer fresh"

    async def test_project_files_scopes_requests(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.method == "GET":
                return httpx.Response(200, json={"content": "x", "metadata": {"version": 1}})
            return httpx.Response(
                200, json={"metadata": {"version": 2, "sync_status": "synced"}}
            )

        async with _client(httpx.MockTransport(handler)) as api:
            files = ProjectFiles(api, 7)
            assert (await files.read_file(3))["content"] == "x"
            assert await files.write_file(3, "y") == {"version": 2, "sync_status": "synced"}

        assert [r.url.path for r in seen] == ["/api/v1/files/7/content"] * 2
        assert seen[0].url.params["file_id"] == "3"
        assert json.loads(seen[1].content) == {"content": "y"}
