"""In-memory sliding-window request limiter. State is lost on restart."""

from __future__ import annotations

from collections import deque
from datetime import UTC, datetime


class InMemoryRateLimiter:
    """Count requests per client key in a sliding window.

    Safe under asyncio's single-threaded model: ``hit`` has no await points
    between reading and mutating the window.
    """

    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = {}

    def clear(self, key: str) -> None:
        self._hits.pop(key, None)

    def _prune(self, key: str, now: float, window_seconds: int) -> deque[float] | None:
        hits = self._hits.get(key)
        if hits is None:
            return None
        cutoff = now - window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[key]
            return None
        return hits

    def hit(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Record one request for ``key``.

        Returns ``(limited, retry_after_seconds)``. A limited request is not
        counted, so a client that backs off regains access when the window
        slides past its earlier requests.
        """
        now = datetime.now(UTC).timestamp()
        hits = self._prune(key, now, window_seconds)
        if hits is not None and len(hits) >= limit:
            retry_after = int(hits[0] + window_seconds - now) + 1
            return True, max(retry_after, 1)
        if hits is None:
            hits = self._hits[key] = deque()
        hits.append(now)
        return False, 0
