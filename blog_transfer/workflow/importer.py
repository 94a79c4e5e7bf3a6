"""Import workflow: uploaded archive → stored posts.

Steps:

1. ``enumerate posts`` lists the archive's post entries.
2. ``import post i/n: <title>`` imports one entry and returns a small
   delta report; per-entry errors become report entries, not failures.
3. ``finalize`` deletes the uploaded archive and writes the report.

Deltas are folded into the running report outside the steps, and
progress is written after every entry from outside the steps, so a
resumed task rebuilds identical totals from replayed deltas.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any

from blog_transfer.archive.entries import (
    enumerate_markdown_posts,
    enumerate_native_posts,
)
from blog_transfer.archive.zip import ArchiveFiles, parse_zip
from blog_transfer.core.exceptions import ArchiveNotFoundError
from blog_transfer.models import (
    FailedEntry,
    ImportMode,
    ImportReport,
    PostEntry,
    SucceededEntry,
    TaskError,
    TaskProgress,
    TaskStatus,
)
from blog_transfer.models.task import (
    import_archive_key,
    import_progress_key,
)
from blog_transfer.workflow.base import BaseWorkflow
from blog_transfer.workflow.helpers import import_single_post

logger = logging.getLogger(__name__)

NO_ENTRIES_WARNING = "No importable posts found in the archive"
CANCELLED_WARNING = "Import cancelled"


class ImportWorkflow(BaseWorkflow):
    progress_key = staticmethod(import_progress_key)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._files: ArchiveFiles | None = None

    @property
    def mode(self) -> ImportMode:
        return ImportMode(self.run_record.params["mode"])

    @property
    def archive_key(self) -> str:
        return self.run_record.params.get("archive_key") or import_archive_key(
            self.task_id
        )

    def _archive(self) -> ArchiveFiles:
        """Fetch and parse the uploaded archive (memoized per process)."""
        if self._files is None:
            data = self._storage.get(self.archive_key)
            if data is None:
                raise ArchiveNotFoundError(self.archive_key)
            self._files = parse_zip(data)
        return self._files

    async def execute(self) -> None:
        raw_entries = await self.step.do("enumerate posts", self._enumerate)
        entries = [PostEntry.model_validate(e) for e in raw_entries]
        logger.info(
            "Posts enumerated: task=%s mode=%s count=%d",
            self.task_id,
            self.mode,
            len(entries),
        )

        if not entries:
            empty = ImportReport(warnings=[NO_ENTRIES_WARNING])
            await self.step.do("finalize", partial(self._finalize, 0, empty))
            return

        total = len(entries)
        report = ImportReport()
        for i, entry in enumerate(entries):
            await self.check_cancelled(CANCELLED_WARNING)

            delta = ImportReport.model_validate(
                await self.step.do(
                    f"import post {i + 1}/{total}: {entry.label}",
                    partial(self._import_entry, entry),
                )
            )
            report.extend(delta)
            logger.info(
                "Post import step completed: task=%s step=%d/%d title=%r "
                "succeeded=%d failed=%d",
                self.task_id,
                i + 1,
                total,
                entry.label,
                len(delta.succeeded),
                len(delta.failed),
            )

            await self.progress.write(
                _progress(TaskStatus.PROCESSING, total, i + 1, entry.label, report)
            )

        await self.step.do("finalize", partial(self._finalize, total, report))
        logger.info("Import finished: task=%s %s", self.task_id, report.summary())

    async def on_failure(self, reason: str) -> None:
        await super().on_failure(reason)
        self._storage.delete(self.archive_key)

    async def _enumerate(self) -> list[dict[str, Any]]:
        files = self._archive()
        if self.mode is ImportMode.NATIVE:
            entries = enumerate_native_posts(files)
        else:
            entries = enumerate_markdown_posts(files)
        return [e.model_dump(mode="json", by_alias=True) for e in entries]

    async def _import_entry(self, entry: PostEntry) -> dict[str, Any]:
        files = self._archive()
        delta = ImportReport()
        timeout = self._settings.entry_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                result = await import_single_post(
                    files,
                    entry,
                    self.mode,
                    store=self._store,
                    storage=self._storage,
                )
        except TimeoutError:
            logger.warning("Post %r timed out after %ss", entry.label, timeout)
            delta.failed.append(
                FailedEntry(title=entry.label, reason=f"Timed out after {timeout:g}s")
            )
            return delta.model_dump(mode="json")
        except Exception as exc:
            logger.warning(
                "Post %r failed to import: %s", entry.label, exc, exc_info=True
            )
            reason = getattr(exc, "message", None) or str(exc) or type(exc).__name__
            delta.failed.append(FailedEntry(title=entry.label, reason=reason))
            return delta.model_dump(mode="json")

        if result.skipped:
            delta.warnings.append(f"[{result.title}] slug exists, skipped")
        else:
            delta.succeeded.append(SucceededEntry(title=result.title, slug=result.slug))
        delta.warnings.extend(f"[{result.title}] {w}" for w in result.warnings)
        return delta.model_dump(mode="json")

    async def _finalize(self, total: int, report: ImportReport) -> None:
        self._storage.delete(self.archive_key)
        progress = _progress(TaskStatus.COMPLETED, total, total, "", report)
        progress.report = report
        await self.progress.write(progress)


def _progress(
    status: TaskStatus, total: int, completed: int, current: str, report: ImportReport
) -> TaskProgress:
    return TaskProgress(
        status=status,
        total=total,
        completed=completed,
        current=current,
        errors=[TaskError(post=f.title, reason=f.reason) for f in report.failed],
        warnings=list(report.warnings),
    )
