from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from blog_transfer.config import WorkflowSettings
from blog_transfer.core.exceptions import TaskCancelledError
from blog_transfer.models import (
    TaskProgress,
    TaskStatus,
    WorkflowRun,
    WorkflowRunStatus,
)
from blog_transfer.models.task import cancel_key
from blog_transfer.status.base import StatusStore
from blog_transfer.storage.base import StorageBackend
from blog_transfer.store.base import Store
from blog_transfer.workflow.progress import ProgressReporter
from blog_transfer.workflow.step import Sleeper, WorkflowStep

logger = logging.getLogger(__name__)


class BaseWorkflow(ABC):
    """Shared plumbing for one durable export or import run.

    Subclasses implement :meth:`execute`; :meth:`run` wraps it so that
    every run ends with a terminal progress record and run status.
    """

    def __init__(
        self,
        run: WorkflowRun,
        *,
        storage: StorageBackend,
        store: Store,
        status: StatusStore,
        settings: WorkflowSettings | None = None,
        sleeper: Sleeper = asyncio.sleep,
    ) -> None:
        self.run_record = run
        self.task_id = run.id
        self._storage = storage
        self._store = store
        self._status = status
        self._settings = settings or WorkflowSettings()
        self.step = WorkflowStep(run.id, store, self._settings, sleeper=sleeper)
        self.progress = ProgressReporter(
            status, self.progress_key(run.id), self._settings.progress_ttl_seconds
        )

    @staticmethod
    @abstractmethod
    def progress_key(task_id: str) -> str: ...

    @abstractmethod
    async def execute(self) -> None:
        """Drive the workflow's steps; raise to fail the task."""
        ...

    async def run(self) -> TaskProgress | None:
        """Execute to a terminal state and return the last progress record."""
        kind = self.run_record.kind.value
        logger.info("%s workflow started: task=%s", kind, self.task_id)
        try:
            await self.execute()
        except Exception as exc:
            reason = _reason(exc)
            logger.error(
                "%s workflow failed: task=%s error=%s",
                kind,
                self.task_id,
                reason,
                exc_info=True,
            )
            await self.on_failure(reason)
            await self._set_run_status(WorkflowRunStatus.FAILED)
        else:
            await self._set_run_status(WorkflowRunStatus.COMPLETED)
            logger.info(
                "%s workflow finished: task=%s (steps executed=%d, replayed=%d)",
                kind,
                self.task_id,
                self.step.executed,
                self.step.replayed,
            )
        return await self.progress.read()

    async def check_cancelled(self, message: str) -> None:
        """Raise :class:`TaskCancelledError` once the cancel flag is set."""
        if await self._status.get(cancel_key(self.task_id)) is not None:
            logger.info("Task %s cancelled", self.task_id)
            raise TaskCancelledError(message)

    async def on_failure(self, reason: str) -> None:
        await self.progress.write(
            TaskProgress(status=TaskStatus.FAILED, warnings=[reason])
        )

    async def _set_run_status(self, status: WorkflowRunStatus) -> None:
        self.run_record.status = status
        await self._store.update_run(self.run_record)


def _reason(exc: Exception) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message or type(exc).__name__
