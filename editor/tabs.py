"""Tab manager: ordered open files on top of an editor session."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from editor.session import SAVE_ERRORS

if TYPE_CHECKING:
    from editor.session import Buffer, EditorSession

logger = logging.getLogger(__name__)


class CloseDecision(StrEnum):
    """Answer to "save changes before closing?"."""

    SAVE = "save"
    DISCARD = "discard"
    CANCEL = "cancel"


ConfirmClose = Callable[[int], CloseDecision]


@dataclass
class CloseResult:
    closed: bool
    decision: CloseDecision | None = None
    sync_status: str | None = None
    error: str | None = None


class TabManager:
    """Open tabs in presentation order.

    Dirty indicators come from the session; the tab list holds file IDs only.
    """

    def __init__(self, session: EditorSession) -> None:
        self.session = session
        self._tabs: list[int] = []

    @property
    def tabs(self) -> list[int]:
        return list(self._tabs)

    @property
    def current(self) -> int | None:
        return self.session.current_file_id

    def is_dirty(self, file_id: int) -> bool:
        return self.session.is_dirty(file_id)

    async def open(self, file_id: int) -> Buffer | None:
        """Open ``file_id`` (appended at the end if new) and make it current."""
        if file_id not in self._tabs:
            self._tabs.append(file_id)
        return await self.session.open_file(file_id)

    async def activate(self, file_id: int) -> Buffer | None:
        if file_id not in self._tabs:
            raise ValueError(f"File {file_id} is not open in a tab")
        return await self.session.open_file(file_id)

    async def close(self, file_id: int, confirm: ConfirmClose | None = None) -> CloseResult:
        """Close a tab, asking ``confirm`` what to do with unsaved changes.

        With SAVE the save is awaited before the tab goes away, so the
        result carries the outcome's sync status. A failed save, or an edit
        made while the save was in flight, keeps the tab open.
        """
        if file_id not in self._tabs:
            raise ValueError(f"File {file_id} is not open in a tab")

        decision: CloseDecision | None = None
        if self.session.is_dirty(file_id):
            if confirm is None:
                raise ValueError("Closing a tab with unsaved changes requires a decision")
            decision = confirm(file_id)
            if decision is CloseDecision.CANCEL:
                return CloseResult(
                    closed=False, decision=decision, sync_status=self.session.sync_status(file_id)
                )
            if decision is CloseDecision.SAVE:
                try:
                    await self.session.save(file_id)
                except SAVE_ERRORS as exc:
                    logger.warning("Save before closing file %s failed: %s", file_id, exc)
                    return CloseResult(
                        closed=False,
                        decision=decision,
                        sync_status=self.session.sync_status(file_id),
                        error=str(exc),
                    )
                if self.session.is_dirty(file_id):
                    logger.info("File %s was edited while saving; keeping its tab", file_id)
                    return CloseResult(
                        closed=False,
                        decision=decision,
                        sync_status=self.session.sync_status(file_id),
                        error="File was edited while saving",
                    )

        sync_status = self.session.sync_status(file_id)
        was_current = self.session.current_file_id == file_id
        if file_id in self._tabs:
            self._tabs.remove(file_id)
        self.session.close_file(file_id)
        if was_current and self._tabs:
            await self.session.open_file(self._tabs[-1])
        return CloseResult(closed=True, decision=decision, sync_status=sync_status)

    def move(self, from_index: int, to_index: int) -> None:
        """Reorder tabs; does not touch buffers or sync state."""
        if not (0 <= from_index < len(self._tabs) and 0 <= to_index < len(self._tabs)):
            raise IndexError("Tab index out of range")
        file_id = self._tabs.pop(from_index)
        self._tabs.insert(to_index, file_id)

    async def next_tab(self) -> int | None:
        return await self._cycle(1)

    async def previous_tab(self) -> int | None:
        return await self._cycle(-1)

    async def _cycle(self, step: int) -> int | None:
        if not self._tabs:
            return None
        current = self.current
        if current is not None and current in self._tabs:
            index = (self._tabs.index(current) + step) % len(self._tabs)
        else:
            index = 0 if step > 0 else len(self._tabs) - 1
        target = self._tabs[index]
        await self.session.open_file(target)
        return target
