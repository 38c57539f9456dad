"""Editor session: in-memory buffers, dirty tracking and debounced autosave.

Every open file has its own buffer and its own autosave timer, so moving
focus to another file never drops a pending save of the previous one.
Responses are applied by issue order:

- a load response is discarded when its file is no longer the current one
  (or was edited meanwhile);
- a save confirmation is discarded when a newer save of the same file has
  already been issued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from editor.api_client import ApiError

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 2.0

SAVE_ERRORS = (ApiError, httpx.HTTPError)


class FileGateway(Protocol):
    """Backend file access used by the session (see ``editor.api_client.ProjectFiles``)."""

    async def read_file(self, file_id: int) -> dict[str, Any]: ...

    async def write_file(self, file_id: int, content: str) -> dict[str, Any]: ...


@dataclass
class Buffer:
    """Editable content of one file."""

    file_id: int
    content: str = ""
    dirty: bool = False
    sync_status: str | None = None
    version: int | None = None
    warning: str | None = None
    last_error: str | None = None
    # Bumped on every edit; a save only clears ``dirty`` if no edit happened since it was issued.
    generation: int = 0


class EditorSession:
    """Buffers of the files open in one project."""

    def __init__(
        self,
        files: FileGateway,
        *,
        autosave: bool = True,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
    ) -> None:
        self.files = files
        self.autosave = autosave
        self.autosave_delay = autosave_delay
        self.current_file_id: int | None = None
        self._buffers: dict[int, Buffer] = {}
        self._timers: dict[int, asyncio.Task[None]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._load_seq = 0
        self._save_seq: dict[int, int] = {}

    def buffer(self, file_id: int) -> Buffer | None:
        return self._buffers.get(file_id)

    def is_dirty(self, file_id: int) -> bool:
        buffer = self._buffers.get(file_id)
        return buffer is not None and buffer.dirty

    def sync_status(self, file_id: int) -> str | None:
        buffer = self._buffers.get(file_id)
        return buffer.sync_status if buffer is not None else None

    def dirty_files(self) -> list[int]:
        return [file_id for file_id, buffer in self._buffers.items() if buffer.dirty]

    def has_pending_save(self, file_id: int) -> bool:
        """True while a debounced save of ``file_id`` is waiting to fire."""
        return file_id in self._timers

    async def open_file(self, file_id: int) -> Buffer | None:
        """Focus ``file_id`` and load its content.

        A buffer with unsaved edits is focused as is. Returns None when the
        load response arrived too late to be applied.
        """
        self.current_file_id = file_id
        existing = self._buffers.get(file_id)
        if existing is not None and existing.dirty:
            return existing

        self._load_seq += 1
        load_seq = self._load_seq
        generation = existing.generation if existing is not None else 0
        data = await self.files.read_file(file_id)

        if self.current_file_id != file_id or self._load_seq != load_seq:
            logger.debug("Discarding stale load of file %s", file_id)
            return None
        buffer = self._buffers.setdefault(file_id, Buffer(file_id=file_id))
        if buffer.generation != generation:
            logger.debug("File %s was edited while loading; keeping the edits", file_id)
            return buffer

        metadata = data.get("metadata") or {}
        buffer.content = data.get("content", "")
        buffer.dirty = False
        buffer.sync_status = metadata.get("sync_status")
        buffer.version = metadata.get("version")
        buffer.warning = data.get("warning")
        buffer.last_error = None
        return buffer

    def edit(self, content: str, file_id: int | None = None) -> Buffer:
        """Replace the buffer content (current file by default) and schedule an autosave."""
        target = self.current_file_id if file_id is None else file_id
        if target is None:
            raise ValueError("No file is open")
        buffer = self._buffers.setdefault(target, Buffer(file_id=target))
        buffer.content = content
        buffer.dirty = True
        buffer.generation += 1
        if self.autosave:
            self._schedule_save(target)
        return buffer

    async def save(self, file_id: int | None = None) -> dict[str, Any]:
        """Save immediately, superseding any pending autosave of the file.

        Raises the backend error on failure; the buffer then stays dirty and
        ``last_error`` is set.
        """
        target = self.current_file_id if file_id is None else file_id
        if target is None:
            raise ValueError("No file is open")
        self._cancel_timer(target)
        return await self._save(target)

    def close_file(self, file_id: int) -> None:
        """Drop a buffer and its pending autosave. In-flight saves still complete."""
        self._cancel_timer(file_id)
        self._buffers.pop(file_id, None)
        if self.current_file_id == file_id:
            self.current_file_id = None

    async def flush(self) -> None:
        """Fire pending autosaves now and wait for every in-flight save."""
        loop = asyncio.get_running_loop()
        for file_id in list(self._timers):
            self._cancel_timer(file_id)
            self._track(loop.create_task(self._autosave(file_id)))
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _track(self, task: asyncio.Task[None]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_timer(self, file_id: int) -> None:
        pending = self._timers.pop(file_id, None)
        if pending is not None:
            pending.cancel()

    def _schedule_save(self, file_id: int) -> None:
        self._cancel_timer(file_id)
        task = asyncio.get_running_loop().create_task(self._debounced_save(file_id))
        self._timers[file_id] = task
        self._track(task)

    async def _debounced_save(self, file_id: int) -> None:
        await asyncio.sleep(self.autosave_delay)
        # From here on the save is in flight; later edits schedule a new one.
        if self._timers.get(file_id) is asyncio.current_task():
            del self._timers[file_id]
        await self._autosave(file_id)

    async def _autosave(self, file_id: int) -> None:
        try:
            await self._save(file_id)
        except SAVE_ERRORS as exc:
            logger.warning("Auto-save of file %s failed: %s", file_id, exc)

    async def _save(self, file_id: int) -> dict[str, Any]:
        buffer = self._buffers.get(file_id)
        if buffer is None:
            raise ValueError(f"File {file_id} is not open")
        seq = self._save_seq.get(file_id, 0) + 1
        self._save_seq[file_id] = seq
        generation = buffer.generation

        try:
            metadata = await self.files.write_file(file_id, buffer.content)
        except SAVE_ERRORS as exc:
            if self._save_seq[file_id] == seq:
                buffer.last_error = str(exc)
            raise

        if self._save_seq[file_id] != seq:
            logger.debug("Discarding stale save confirmation %d for file %s", seq, file_id)
            return metadata
        buffer.sync_status = metadata.get("sync_status")
        buffer.version = metadata.get("version")
        buffer.last_error = None
        if buffer.generation == generation:
            buffer.dirty = False
        return metadata
