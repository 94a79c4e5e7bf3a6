"""Main facade for the blog_transfer library."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from blog_transfer.archive.entries import MANIFEST_FILE, MARKDOWN_SUFFIX
from blog_transfer.archive.zip import build_zip, parse_zip, read_validated_json
from blog_transfer.config import WorkflowSettings, parse_config
from blog_transfer.core.exceptions import TaskNotFoundError
from blog_transfer.facade.types import ExportStarted, ImportStarted, UploadedFile
from blog_transfer.models import (
    ExportManifest,
    ImportMode,
    PostStatus,
    TaskProgress,
    TaskStatus,
    WorkflowKind,
    WorkflowRun,
    WorkflowRunStatus,
)
from blog_transfer.models.task import (
    cancel_key,
    export_archive_key,
    export_progress_key,
    import_archive_key,
    import_progress_key,
)
from blog_transfer.workflow.base import BaseWorkflow
from blog_transfer.workflow.export import ExportWorkflow
from blog_transfer.workflow.importer import ImportWorkflow
from blog_transfer.workflow.progress import read_progress

if TYPE_CHECKING:
    from blog_transfer.status.base import StatusStore
    from blog_transfer.storage.base import StorageBackend
    from blog_transfer.store.base import Store
    from blog_transfer.workflow.step import Sleeper

logger = logging.getLogger(__name__)

ZIP_SUFFIX = ".zip"

_WORKFLOWS: dict[WorkflowKind, type[BaseWorkflow]] = {
    WorkflowKind.EXPORT: ExportWorkflow,
    WorkflowKind.IMPORT: ImportWorkflow,
}


class BlogTransfer:
    """Main entry point for the blog_transfer library.

    Starts durable export and import tasks in the background, exposes
    their progress records, and serves finished export archives.

    Usage::

        from blog_transfer.status.memory import InMemoryStatusStore
        from blog_transfer.storage.disk import DiskStorage
        from blog_transfer.store.sql import SqlStore, sqlite_url

        bt = BlogTransfer(
            storage=DiskStorage("./data"),
            store=SqlStore(sqlite_url("./blog.db")),
            status=InMemoryStatusStore(),
        )
        await bt.init()
        started = await bt.start_export()
        progress = await bt.wait(started.task_id)
        archive = await bt.download_export(started.task_id)
    """

    def __init__(
        self,
        storage: StorageBackend,
        store: Store,
        status: StatusStore,
        settings: WorkflowSettings | None = None,
        *,
        sleeper: Sleeper = asyncio.sleep,
    ) -> None:
        self._storage = storage
        self._store = store
        self._status = status
        self._settings = settings or WorkflowSettings()
        self._sleeper = sleeper
        self._running: dict[str, asyncio.Task[TaskProgress | None]] = {}

    @classmethod
    def from_config(cls, config: dict[str, Any], **kwargs: Any) -> BlogTransfer:
        storage, store, status, settings = parse_config(config)
        return cls(storage, store, status, settings, **kwargs)

    @property
    def store(self) -> Store:
        return self._store

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    async def init(self) -> None:
        """Create missing tables / indices (non-destructive)."""
        await self._store.init()

    async def reset(self) -> None:
        """Drop all data and recreate from scratch."""
        await self._store.reset()

    async def close(self) -> None:
        """Stop in-process tasks and release the store.

        Interrupted runs stay ``running`` and can be picked up again by
        :meth:`resume_incomplete`.
        """
        for task in self._running.values():
            task.cancel()
        await asyncio.gather(*self._running.values(), return_exceptions=True)
        self._running.clear()
        await self._store.close()

    # ── Export ───────────────────────────────────────────────────────

    async def start_export(
        self,
        post_ids: list[int] | None = None,
        status: PostStatus | None = None,
    ) -> ExportStarted:
        """Start exporting posts (all, or the given ids / status) to an archive."""
        run = WorkflowRun(
            kind=WorkflowKind.EXPORT,
            params={
                "post_ids": list(post_ids) if post_ids else None,
                "status": status.value if status else None,
            },
        )
        await self._start(run, "Preparing export...")
        return ExportStarted(task_id=run.id)

    async def get_export_progress(self, task_id: str) -> TaskProgress | None:
        return await read_progress(self._status, export_progress_key(task_id))

    async def download_export(self, task_id: str) -> bytes | None:
        """Return the finished archive of an export task, or ``None``."""
        progress = await self.get_export_progress(task_id)
        key = (
            progress.download_key
            if progress is not None and progress.download_key
            else export_archive_key(task_id)
        )
        return self._storage.get(key)

    async def cancel_export(self, task_id: str) -> bool:
        return await self._cancel(task_id, export_progress_key(task_id))

    # ── Import ───────────────────────────────────────────────────────

    async def start_import(
        self, files: Iterable[UploadedFile | tuple[str, bytes]]
    ) -> ImportStarted:
        """Start importing one ``.zip`` archive or a set of ``.md`` files.

        Loose markdown files are packed into an archive first.  The mode
        is ``native`` when the archive carries a valid manifest.

        Raises:
            ValueError: when no files are given, or a multi-file upload
                contains something other than markdown.
            ArchiveError: when the upload is not a readable zip.
        """
        uploads = [f if isinstance(f, UploadedFile) else UploadedFile(*f) for f in files]
        archive = _pack_uploads(uploads)
        mode = detect_mode(parse_zip(archive))

        run = WorkflowRun(kind=WorkflowKind.IMPORT, params={"mode": mode.value})
        run.params["archive_key"] = import_archive_key(run.id)
        self._storage.write(run.params["archive_key"], archive)
        logger.info(
            "Import upload stored: task=%s mode=%s size=%d",
            run.id,
            mode,
            len(archive),
        )

        await self._start(run, "Preparing import...")
        return ImportStarted(task_id=run.id, mode=mode)

    async def get_import_progress(self, task_id: str) -> TaskProgress | None:
        return await read_progress(self._status, import_progress_key(task_id))

    async def cancel_import(self, task_id: str) -> bool:
        return await self._cancel(task_id, import_progress_key(task_id))

    # ── Task control ─────────────────────────────────────────────────

    def is_active(self, task_id: str) -> bool:
        """Whether the task is currently executing in this process."""
        return task_id in self._running

    async def wait(self, task_id: str) -> TaskProgress | None:
        """Wait for an in-process task to finish; return its last progress."""
        task = self._running.get(task_id)
        if task is not None:
            return await task
        run = await self._store.get_run(task_id)
        if run is None:
            raise TaskNotFoundError(task_id)
        return await self._workflow(run).progress.read()

    async def resume(self, task_id: str) -> None:
        """Relaunch an interrupted run; finished steps replay from checkpoints."""
        if task_id in self._running:
            return
        run = await self._store.get_run(task_id)
        if run is None:
            raise TaskNotFoundError(task_id)
        if run.status is not WorkflowRunStatus.RUNNING:
            raise ValueError(f"Task {task_id} already {run.status}")
        logger.info("Resuming %s task %s", run.kind, task_id)
        self._launch(self._workflow(run))

    async def resume_incomplete(self) -> list[str]:
        """Resume every ``running`` run not already active in this process."""
        resumed = []
        for run in await self._store.list_runs(status=WorkflowRunStatus.RUNNING):
            if run.id in self._running:
                continue
            self._launch(self._workflow(run))
            resumed.append(run.id)
        if resumed:
            logger.info("Resumed %d interrupted task(s)", len(resumed))
        return resumed

    # ── Internals ────────────────────────────────────────────────────

    def _workflow(self, run: WorkflowRun) -> BaseWorkflow:
        return _WORKFLOWS[run.kind](
            run,
            storage=self._storage,
            store=self._store,
            status=self._status,
            settings=self._settings,
            sleeper=self._sleeper,
        )

    async def _start(self, run: WorkflowRun, current: str) -> None:
        workflow = self._workflow(run)
        await workflow.progress.write(
            TaskProgress(status=TaskStatus.PENDING, current=current)
        )
        try:
            await self._store.create_run(run)
            self._launch(workflow)
        except Exception:
            logger.error("%s workflow create failed: task=%s", run.kind, run.id)
            await workflow.progress.delete()
            raise

    def _launch(self, workflow: BaseWorkflow) -> None:
        task_id = workflow.task_id
        task = asyncio.create_task(workflow.run(), name=f"blog-transfer:{task_id}")
        self._running[task_id] = task
        task.add_done_callback(lambda _: self._running.pop(task_id, None))

    async def _cancel(self, task_id: str, progress_key: str) -> bool:
        progress = await read_progress(self._status, progress_key)
        if progress is None or progress.status.is_terminal:
            return False
        await self._status.set(
            cancel_key(task_id),
            "1",
            ttl_seconds=self._settings.progress_ttl_seconds,
        )
        logger.info("Cancellation requested for task %s", task_id)
        return True


def detect_mode(files: dict[str, bytes]) -> ImportMode:
    manifest = read_validated_json(files, MANIFEST_FILE, ExportManifest)
    return ImportMode.NATIVE if manifest is not None else ImportMode.MARKDOWN


def _pack_uploads(uploads: list[UploadedFile]) -> bytes:
    if not uploads:
        raise ValueError("No files provided")
    if len(uploads) == 1 and uploads[0].name.lower().endswith(ZIP_SUFFIX):
        return uploads[0].data

    entries: dict[str, bytes] = {}
    for upload in uploads:
        if not upload.name.lower().endswith(MARKDOWN_SUFFIX):
            raise ValueError(
                f"Unsupported upload {upload.name!r}: "
                "provide one .zip archive or only .md files"
            )
        name = PurePosixPath(upload.name.replace("\\", "/")).name
        entries[name] = upload.data
    return build_zip(entries)
