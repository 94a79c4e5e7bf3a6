from pathlib import Path

import pytest

from blog_transfer import BlogTransfer, TaskStatus
from blog_transfer.archive.zip import build_zip
from blog_transfer.models import (
    Checkpoint,
    Post,
    WorkflowKind,
    WorkflowRun,
    WorkflowRunStatus,
)
from blog_transfer.models.task import export_archive_key, import_archive_key
from blog_transfer.status.memory import InMemoryStatusStore
from blog_transfer.storage.memory import MemoryStorage
from blog_transfer.store.memory import InMemoryStore
from blog_transfer.store.sql import SqlStore, sqlite_url

NATIVE_ARCHIVE = {
    "manifest.json": '{"version": "1.0", "exportedAt": "2024-01-01T00:00:00.000Z",'
    ' "postCount": 2, "generator": "blog-transfer"}',
    "posts/a/index.md": "---\ntitle: A\nslug: a\n---\nFirst.\n",
    "posts/b/index.md": "---\ntitle: B\nslug: b\n---\nSecond.\n",
}


class TestE2EResume:
    async def test_resume_replays_finished_steps(
        self,
        bt: BlogTransfer,
        storage: MemoryStorage,
        store: InMemoryStore,
    ):
        # A run interrupted after importing its first post.
        run = WorkflowRun(kind=WorkflowKind.IMPORT, params={"mode": "native"})
        run.params["archive_key"] = import_archive_key(run.id)
        storage.write(run.params["archive_key"], build_zip(NATIVE_ARCHIVE))
        await store.create_run(run)
        await store.insert_post(Post(title="A", slug="a"))
        entries = [
            {"dir": d, "title": d.upper(), "prefix": f"posts/{d}", "mdPath": None}
            for d in ("a", "b")
        ]
        await store.append_checkpoint(Checkpoint(run.id, 0, "enumerate posts", entries))
        await store.append_checkpoint(
            Checkpoint(
                run.id,
                1,
                "import post 1/2: A",
                {"succeeded": [{"title": "A", "slug": "a"}], "failed": [], "warnings": []},
            )
        )

        assert await bt.resume_incomplete() == [run.id]
        progress = await bt.wait(run.id)

        assert progress is not None
        assert progress.status is TaskStatus.COMPLETED
        assert progress.report is not None
        assert [e.slug for e in progress.report.succeeded] == ["a", "b"]
        assert progress.report.warnings == []
        assert [cp.name for cp in await store.list_checkpoints(run.id)] == [
            "enumerate posts",
            "import post 1/2: A",
            "import post 2/2: B",
            "finalize",
        ]
        finished = await store.get_run(run.id)
        assert finished is not None and finished.status is WorkflowRunStatus.COMPLETED
        assert storage.get(run.params["archive_key"]) is None

        with pytest.raises(ValueError):
            await bt.resume(run.id)
        assert await bt.resume_incomplete() == []

    async def test_export_resumes_in_new_process(
        self,
        tmp_path: Path,
        storage: MemoryStorage,
        settings,
        sleeper,
        until_done,
    ):
        url = sqlite_url(str(tmp_path / "blog.db"))

        first = BlogTransfer(
            storage, SqlStore(url), InMemoryStatusStore(), settings, sleeper=sleeper
        )
        await first.init()
        await first.store.insert_post(Post(title="Kept", slug="kept"))
        started = await first.start_export()
        await until_done(first.get_export_progress, started.task_id)
        assert await first.download_export(started.task_id) is not None
        # Stopping mid retention sleep leaves the run resumable.
        await first.close()

        later = type(sleeper)()
        later.gate.set()
        second = BlogTransfer(
            storage, SqlStore(url), InMemoryStatusStore(), settings, sleeper=later
        )
        await second.init()
        try:
            assert await second.resume_incomplete() == [started.task_id]
            await second.wait(started.task_id)
            run = await second.store.get_run(started.task_id)
            checkpoints = await second.store.list_checkpoints(started.task_id)
        finally:
            await second.close()

        assert run is not None and run.status is WorkflowRunStatus.COMPLETED
        assert [cp.name for cp in checkpoints] == [
            "fetch posts",
            "build and upload export",
            "cleanup delay",
            "cleanup export zip",
        ]
        assert later.parked and later.parked[0] > 60
        assert storage.get(export_archive_key(started.task_id)) is None


class TestE2ECancel:
    async def test_cancel_before_first_post(
        self, bt: BlogTransfer, storage: MemoryStorage, store: InMemoryStore, until_done
    ):
        started = await bt.start_import([("a.md", b"---\ntitle: A\n---\nx\n")])
        assert await bt.cancel_import(started.task_id)

        progress = await until_done(bt.get_import_progress, started.task_id)
        assert progress.status is TaskStatus.FAILED
        assert progress.warnings == ["Import cancelled"]
        assert await store.find_post_by_slug("a") is None
        assert storage.get(import_archive_key(started.task_id)) is None
        run = await store.get_run(started.task_id)
        assert run is not None and run.status is WorkflowRunStatus.FAILED

    async def test_cancel_export_before_build(
        self, bt: BlogTransfer, store: InMemoryStore, until_done
    ):
        await store.insert_post(Post(title="A", slug="a"))
        started = await bt.start_export()
        assert await bt.cancel_export(started.task_id)

        progress = await until_done(bt.get_export_progress, started.task_id)
        assert progress.status is TaskStatus.FAILED
        assert progress.warnings == ["Export cancelled"]
        assert await bt.download_export(started.task_id) is None

    async def test_cancel_finished_or_unknown(self, bt: BlogTransfer):
        started = await bt.start_import([("a.md", b"---\ntitle: A\n---\nx\n")])
        await bt.wait(started.task_id)
        assert not await bt.cancel_import(started.task_id)
        assert not await bt.cancel_import("missing")
        assert not await bt.cancel_export("missing")
