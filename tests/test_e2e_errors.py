import asyncio
import dataclasses

import pytest

from blog_transfer import BlogTransfer, TaskStatus
from blog_transfer.archive.zip import build_zip
from blog_transfer.core.exceptions import ArchiveError, TaskNotFoundError
from blog_transfer.models import Post, TaskError
from blog_transfer.status.memory import InMemoryStatusStore
from blog_transfer.storage.memory import MemoryStorage
from blog_transfer.store.memory import InMemoryStore


def post_md(title: str) -> bytes:
    return f"---\ntitle: {title}\n---\nText.\n".encode()


class FlakyStore(InMemoryStore):
    async def insert_post(self, post: Post) -> Post:
        if post.title == "Bad":
            raise RuntimeError("database down")
        return await super().insert_post(post)


class TestE2EErrors:
    async def test_bad_zip(self, bt: BlogTransfer, store: InMemoryStore):
        with pytest.raises(ArchiveError):
            await bt.start_import([("upload.zip", b"not a zip file")])
        assert await store.list_runs() == []

    async def test_no_files(self, bt: BlogTransfer):
        with pytest.raises(ValueError, match="No files"):
            await bt.start_import([])

    async def test_mixed_upload(self, bt: BlogTransfer, store: InMemoryStore):
        with pytest.raises(ValueError, match="image.png"):
            await bt.start_import([("a.md", post_md("A")), ("image.png", b"png")])
        assert await store.list_runs() == []

    async def test_failed_entry_does_not_fail_the_task(
        self,
        storage: MemoryStorage,
        status: InMemoryStatusStore,
        settings,
        sleeper,
        until_done,
    ):
        store = FlakyStore()
        bt = BlogTransfer(storage, store, status, settings, sleeper=sleeper)
        await bt.init()
        try:
            started = await bt.start_import(
                [("good.md", post_md("Good")), ("bad.md", post_md("Bad"))]
            )
            progress = await until_done(bt.get_import_progress, started.task_id)
        finally:
            await bt.close()

        assert progress.status is TaskStatus.COMPLETED
        assert progress.errors == [TaskError(post="Bad", reason="database down")]
        assert progress.report is not None
        assert [e.slug for e in progress.report.succeeded] == ["good"]
        assert [f.title for f in progress.report.failed] == ["Bad"]
        assert await store.find_post_by_slug("bad") is None

    async def test_unknown_task(self, bt: BlogTransfer):
        assert await bt.get_import_progress("nope") is None
        assert await bt.get_export_progress("nope") is None
        assert await bt.download_export("nope") is None
        with pytest.raises(TaskNotFoundError):
            await bt.wait("nope")
        with pytest.raises(TaskNotFoundError):
            await bt.resume("nope")

    async def test_import_archive_lost_fails_task(
        self, bt: BlogTransfer, storage: MemoryStorage, until_done
    ):
        started = await bt.start_import([("a.zip", build_zip({"a.md": post_md("A")}))])
        # Remove the stored upload before the task gets to run.
        storage.delete(f"imports/{started.task_id}.zip")

        progress = await until_done(bt.get_import_progress, started.task_id)
        assert progress.status is TaskStatus.FAILED
        assert progress.warnings and "enumerate posts" in progress.warnings[0]

    async def test_stuck_entry_times_out_alone(
        self,
        storage: MemoryStorage,
        status: InMemoryStatusStore,
        settings,
        sleeper,
        until_done,
    ):
        class HangingStore(InMemoryStore):
            async def insert_post(self, post: Post) -> Post:
                if post.title == "Stuck":
                    await asyncio.Event().wait()
                return await super().insert_post(post)

        store = HangingStore()
        settings = dataclasses.replace(settings, entry_timeout_seconds=0.2)
        bt = BlogTransfer(storage, store, status, settings, sleeper=sleeper)
        await bt.init()
        try:
            started = await bt.start_import(
                [
                    ("a.md", post_md("First")),
                    ("b.md", post_md("Stuck")),
                    ("c.md", post_md("Last")),
                ]
            )
            progress = await until_done(bt.get_import_progress, started.task_id)
        finally:
            await bt.close()

        assert progress.status is TaskStatus.COMPLETED
        assert progress.errors == [
            TaskError(post="Stuck", reason="Timed out after 0.2s")
        ]
        assert progress.report is not None
        assert [e.slug for e in progress.report.succeeded] == ["first", "last"]
        assert await store.find_post_by_slug("stuck") is None
