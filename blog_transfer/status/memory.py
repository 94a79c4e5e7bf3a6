from __future__ import annotations

import time
from collections.abc import Callable

from blog_transfer.status.base import StatusStore


class InMemoryStatusStore(StatusStore):
    """Dict-backed status store with lazy expiry.

    Expired entries are dropped when they are next read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def set(self, key: str, value: str, *, ttl_seconds: float) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)
