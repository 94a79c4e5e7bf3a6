from __future__ import annotations

import logging

from pydantic import ValidationError

from blog_transfer.models import TaskProgress
from blog_transfer.status.base import StatusStore

logger = logging.getLogger(__name__)


async def read_progress(status: StatusStore, key: str) -> TaskProgress | None:
    """Load the progress record at *key*; unreadable records count as absent."""
    raw = await status.get(key)
    if raw is None:
        return None
    try:
        return TaskProgress.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Discarding malformed progress record %s: %s", key, exc)
        return None


class ProgressReporter:
    """Writes one task's progress record, always as a full overwrite."""

    def __init__(self, status: StatusStore, key: str, ttl_seconds: float) -> None:
        self._status = status
        self.key = key
        self._ttl = ttl_seconds

    async def write(self, progress: TaskProgress) -> None:
        await self._status.set(self.key, progress.to_json(), ttl_seconds=self._ttl)

    async def read(self) -> TaskProgress | None:
        return await read_progress(self._status, self.key)

    async def delete(self) -> None:
        await self._status.delete(self.key)
