from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import TypeAlias

import pytest

from blog_transfer import BlogTransfer, WorkflowSettings
from blog_transfer.models import TaskProgress
from blog_transfer.status.memory import InMemoryStatusStore
from blog_transfer.storage.disk import DiskStorage
from blog_transfer.storage.memory import MemoryStorage
from blog_transfer.store.memory import InMemoryStore

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


class GatedSleeper:
    """Sleeper that returns at once for short waits and parks long ones.

    Retry back-offs pass straight through; the export retention sleep
    parks until ``gate`` is set.
    """

    def __init__(self, threshold: float = 60.0) -> None:
        self.threshold = threshold
        self.parked: list[float] = []
        self.gate = asyncio.Event()

    async def __call__(self, seconds: float) -> None:
        if seconds <= self.threshold:
            return
        self.parked.append(seconds)
        await self.gate.wait()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def disk_storage(tmp_path: Path) -> DiskStorage:
    return DiskStorage(base_path=str(tmp_path / "storage"))


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def status() -> InMemoryStatusStore:
    return InMemoryStatusStore()


@pytest.fixture()
def settings() -> WorkflowSettings:
    return WorkflowSettings(
        step_max_attempts=3,
        step_timeout_seconds=5,
        step_retry_initial_wait=0,
        step_retry_max_wait=0,
    )


@pytest.fixture()
def sleeper() -> GatedSleeper:
    return GatedSleeper()


@pytest.fixture()
async def bt(
    storage: MemoryStorage,
    store: InMemoryStore,
    status: InMemoryStatusStore,
    settings: WorkflowSettings,
    sleeper: GatedSleeper,
) -> AsyncGenerator[BlogTransfer]:
    instance = BlogTransfer(storage, store, status, settings, sleeper=sleeper)
    await instance.init()
    yield instance
    await instance.close()


ProgressReader: TypeAlias = Callable[[str], Awaitable[TaskProgress | None]]


@pytest.fixture()
def until_done() -> Callable[[ProgressReader, str], Awaitable[TaskProgress]]:
    """Poll a progress reader until the task reaches a terminal state."""

    async def poll(read: ProgressReader, task_id: str) -> TaskProgress:
        async with asyncio.timeout(5):
            while True:
                progress = await read(task_id)
                if progress is not None and progress.status.is_terminal:
                    return progress
                await asyncio.sleep(0.01)

    return poll
