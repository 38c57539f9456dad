"""Command-line client for the AI-IDE backend."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import os
import sys
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from editor.api_client import ApiError, IdeApiClient, ProjectFiles
from editor.session import EditorSession

CONFIG_FILE = Path.home() / ".ai-ide.json"
_LOCALHOST_HOSTS = {"localhost", "127.0.0.1", "::1"}


def validate_server_url(server_url: str, allow_insecure_http: bool = False) -> str:
    """Validate server URL and enforce HTTPS for non-localhost hosts by default."""
    normalized = server_url.strip().rstrip("/")
    parsed = urlparse(normalized)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Server URL must include scheme and host (e.g. https://example.com)")
    if (
        parsed.scheme == "http"
        and not allow_insecure_http
        and parsed.hostname not in _LOCALHOST_HOSTS
    ):
        raise ValueError(
            "HTTPS is required for non-localhost servers. "
            "Use --allow-insecure-http only on trusted networks."
        )
    return normalized


def load_config(path: Path = CONFIG_FILE) -> dict[str, str]:
    if not path.exists():
        return {}
    config: dict[str, str] = json.loads(path.read_text())
    return config


def save_config(config: dict[str, str], path: Path = CONFIG_FILE) -> None:
    """Write the config (it holds the bearer token) readable by the owner only."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        # An existing file keeps its old mode on open; tighten it before writing.
        os.fchmod(fh.fileno(), 0o600)
        fh.write(json.dumps(config, indent=2))


def _print_tree(nodes: list[dict[str, Any]], indent: int = 0) -> None:
    for node in nodes:
        marker = "/" if node["type"] == "folder" else ""
        status = "" if node["type"] == "folder" else f"  [{node['sync_status']}]"
        print(f"{'  ' * indent}{node['name']}{marker}  (id={node['id']}){status}")
        _print_tree(node.get("children", []), indent + 1)


async def _put_file(api: IdeApiClient, project_id: int, file_id: int, source: Path) -> None:
    session = EditorSession(ProjectFiles(api, project_id), autosave=False)
    await session.open_file(file_id)
    session.edit(source.read_text(encoding="utf-8"))
    metadata = await session.save()
    print(f"Saved {metadata['path']} (version {metadata['version']}, {metadata['sync_status']})")


async def run_command(args: argparse.Namespace, server_url: str, token: str | None) -> int:
    async with IdeApiClient(server_url, token) as api:
        if args.command == "login":
            username = args.username or input("Username: ")
            password = getpass.getpass("Password: ")
            token = await api.login(username, password)
            save_config({"server": server_url, "token": token})
            print(f"Logged in; token stored in {CONFIG_FILE}")
        elif args.command == "projects":
            for project in await api.list_projects():
                print(
                    f"{project['id']:>5}  {project['name']}  "
                    f"[{project['sync_status']}]  {project['file_count']} file(s)"
                )
        elif args.command == "create-project":
            data = await api.create_project(args.name, args.description, args.language)
            print(data["message"])
            for outcome in data.get("files", []):
                state = "ok" if outcome["created"] else f"FAILED: {outcome['error']}"
                print(f"  {outcome['path']}: {state}")
        elif args.command == "tree":
            _print_tree(await api.file_tree(args.project))
        elif args.command == "cat":
            data = await api.read_file(args.project, args.file)
            if data.get("warning"):
                print(f"Warning: {data['warning']}", file=sys.stderr)
            sys.stdout.write(data["content"])
        elif args.command == "put":
            await _put_file(api, args.project, args.file, Path(args.source))
        elif args.command == "status":
            data = await api.sync_status(args.project)
            print(f"Project sync status: {data['sync_status']}")
            for entry in data["files"]:
                print(f"  {entry['path']}: {entry['sync_status']} (v{entry['version']})")
        elif args.command == "retry":
            metadata = await api.retry_sync(args.project, args.file)
            print(f"{metadata['path']}: {metadata['sync_status']}")
        else:
            return 2
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ai-ide", description="AI-IDE command-line client")
    parser.add_argument("--server", "-s", help="Server URL")
    parser.add_argument(
        "--allow-insecure-http",
        action="store_true",
        help="Allow http:// server URLs for non-localhost hosts",
    )
    parser.add_argument("--token", help="Access token (default: stored login or $AI_IDE_TOKEN)")

    subparsers = parser.add_subparsers(dest="command")
    login = subparsers.add_parser("login", help="Log in and store the access token")
    login.add_argument("--username", "-u")
    subparsers.add_parser("projects", help="List projects")
    create = subparsers.add_parser("create-project", help="Create a project")
    create.add_argument("name")
    create.add_argument("--description", default="")
    create.add_argument(
        "--language", choices=["javascript", "python", "html"], default="javascript"
    )
    tree = subparsers.add_parser("tree", help="Show a project's file tree")
    tree.add_argument("project", type=int)
    cat = subparsers.add_parser("cat", help="Print a file")
    cat.add_argument("project", type=int)
    cat.add_argument("file", type=int)
    put = subparsers.add_parser("put", help="Replace a file's content with a local file")
    put.add_argument("project", type=int)
    put.add_argument("file", type=int)
    put.add_argument("source")
    status = subparsers.add_parser("status", help="Show a project's sync status")
    status.add_argument("project", type=int)
    retry = subparsers.add_parser("retry", help="Retry syncing a file to Google Drive")
    retry.add_argument("project", type=int)
    retry.add_argument("file", type=int)
    return parser


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(2)

    config = load_config()
    configured_server_url = args.server or config.get("server") or "http://localhost:8000"
    try:
        server_url = validate_server_url(configured_server_url, args.allow_insecure_http)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    token = args.token or os.environ.get("AI_IDE_TOKEN") or config.get("token")

    try:
        sys.exit(asyncio.run(run_command(args, server_url, token)))
    except ApiError as exc:
        print(f"Error: {exc.message}")
        if exc.needs_drive_auth:
            print("Connect Google Drive again to continue.")
        sys.exit(1)


if __name__ == "__main__":
    main()
