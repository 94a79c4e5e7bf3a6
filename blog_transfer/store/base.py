from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import TracebackType

from blog_transfer.models import (
    Checkpoint,
    Media,
    Post,
    PostStatus,
    Tag,
    WorkflowKind,
    WorkflowRun,
    WorkflowRunStatus,
)


class Store(ABC):
    """Abstract store for posts, tags, media and workflow state.

    Implementations must override every ``@abstractmethod``.
    The default ``atomic()`` is a no-op suitable for in-memory stores;
    database-backed stores should override it to provide a transactional
    boundary.
    """

    # ── Lifecycle ────────────────────────────────────────────────────

    @abstractmethod
    async def init(self) -> None:
        """Create tables / indices (idempotent)."""
        ...

    @abstractmethod
    async def reset(self) -> None:
        """Drop all data and recreate from scratch."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release any held resources (connections, file handles)."""
        ...

    async def __aenter__(self) -> Store:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Wrap multiple operations in a single commit.

        The default implementation is a no-op (each operation is
        auto-committed).  Database-backed stores override this to open
        a session, yield, then commit-or-rollback.
        """
        yield

    # ── Posts ────────────────────────────────────────────────────────

    @abstractmethod
    async def find_full_posts(
        self,
        *,
        ids: list[int] | None = None,
        status: PostStatus | None = None,
    ) -> list[Post]:
        """Return posts with their tags, ordered by ``id``.

        ``ids`` and ``status`` narrow the selection when given.
        """
        ...

    @abstractmethod
    async def get_post(self, post_id: int) -> Post | None:
        """Return a post with its tags by ID, or ``None``."""
        ...

    @abstractmethod
    async def find_post_by_slug(self, slug: str) -> Post | None:
        """Return the post owning *slug*, or ``None``."""
        ...

    @abstractmethod
    async def slug_exists(self, slug: str) -> bool:
        """Check whether a post with *slug* is stored."""
        ...

    @abstractmethod
    async def insert_post(self, post: Post) -> Post:
        """Insert *post* and link its tags (which must already have ids).

        The insert is conditional on the slug: when another post already
        owns it, nothing is written and ``SlugConflictError`` is raised.
        """
        ...

    # ── Tags ─────────────────────────────────────────────────────────

    @abstractmethod
    async def get_or_create_tag(self, name: str) -> Tag:
        """Return the tag named *name*, inserting it if absent.

        Concurrent callers racing on a new name all receive the same row.
        """
        ...

    @abstractmethod
    async def list_tags(self) -> list[Tag]:
        """Return all tags ordered by name."""
        ...

    # ── Media ────────────────────────────────────────────────────────

    @abstractmethod
    async def insert_media(self, media: Media) -> Media:
        """Persist a media row and return it (``id`` is set)."""
        ...

    @abstractmethod
    async def list_media(self) -> list[Media]:
        """Return all media rows in insertion order."""
        ...

    @abstractmethod
    async def link_post_media(self, post_id: int, keys: list[str]) -> int:
        """Link *post_id* to the media rows stored under *keys*.

        Unknown keys and existing links are ignored.  Returns the number
        of links created.
        """
        ...

    @abstractmethod
    async def list_post_media(self, post_id: int) -> list[Media]:
        """Return the media linked to a post."""
        ...

    # ── Workflow runs ────────────────────────────────────────────────

    @abstractmethod
    async def create_run(self, run: WorkflowRun) -> WorkflowRun:
        """Persist a new workflow run and return it."""
        ...

    @abstractmethod
    async def get_run(self, run_id: str) -> WorkflowRun | None:
        """Return a run by ID, or ``None``."""
        ...

    @abstractmethod
    async def update_run(self, run: WorkflowRun) -> None:
        """Persist a status change of an existing run."""
        ...

    @abstractmethod
    async def list_runs(
        self,
        *,
        kind: WorkflowKind | None = None,
        status: WorkflowRunStatus | None = None,
    ) -> list[WorkflowRun]:
        """Return runs ordered by creation time, with optional filters."""
        ...

    # ── Checkpoints ──────────────────────────────────────────────────

    @abstractmethod
    async def append_checkpoint(self, checkpoint: Checkpoint) -> None:
        """Append one step outcome to a task's checkpoint log.

        ``(task_id, seq)`` is unique; appending an existing pair is an
        error.
        """
        ...

    @abstractmethod
    async def list_checkpoints(self, task_id: str) -> list[Checkpoint]:
        """Return a task's checkpoint log ordered by ``seq``."""
        ...
