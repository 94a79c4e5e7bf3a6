from __future__ import annotations

import copy
import itertools

from blog_transfer.core.exceptions import SlugConflictError
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
from blog_transfer.models.utils import utcnow
from blog_transfer.store.base import Store


class InMemoryStore(Store):
    """Store backed by plain Python dicts.

    Safe within a single asyncio event loop: no method awaits between
    its check and its write, so slug and tag-name uniqueness hold even
    for concurrent tasks.  ``atomic()`` is inherited as a no-op from
    the base class.
    """

    def __init__(self) -> None:
        self._posts: dict[int, Post] = {}
        self._slugs: dict[str, int] = {}
        self._tags: dict[str, Tag] = {}
        self._media: dict[str, Media] = {}
        self._post_media: dict[int, list[str]] = {}
        self._runs: dict[str, WorkflowRun] = {}
        self._checkpoints: dict[str, dict[int, Checkpoint]] = {}
        self._post_ids = itertools.count(1)
        self._tag_ids = itertools.count(1)
        self._media_ids = itertools.count(1)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        pass

    async def reset(self) -> None:
        self.__init__()  # type: ignore[misc]

    async def close(self) -> None:
        pass

    # ── Posts ────────────────────────────────────────────────────────

    async def find_full_posts(
        self,
        *,
        ids: list[int] | None = None,
        status: PostStatus | None = None,
    ) -> list[Post]:
        posts = list(self._posts.values())
        if ids is not None:
            wanted = set(ids)
            posts = [p for p in posts if p.id in wanted]
        if status is not None:
            posts = [p for p in posts if p.status == status]
        return [copy.deepcopy(p) for p in sorted(posts, key=lambda p: p.id or 0)]

    async def get_post(self, post_id: int) -> Post | None:
        post = self._posts.get(post_id)
        return copy.deepcopy(post) if post is not None else None

    async def find_post_by_slug(self, slug: str) -> Post | None:
        post_id = self._slugs.get(slug)
        return await self.get_post(post_id) if post_id is not None else None

    async def slug_exists(self, slug: str) -> bool:
        return slug in self._slugs

    async def insert_post(self, post: Post) -> Post:
        if post.slug in self._slugs:
            raise SlugConflictError(post.slug)
        post.id = next(self._post_ids)
        self._slugs[post.slug] = post.id
        self._posts[post.id] = copy.deepcopy(post)
        return post

    # ── Tags ─────────────────────────────────────────────────────────

    async def get_or_create_tag(self, name: str) -> Tag:
        tag = self._tags.get(name)
        if tag is None:
            tag = Tag(name=name, id=next(self._tag_ids))
            self._tags[name] = tag
        return tag

    async def list_tags(self) -> list[Tag]:
        return sorted(self._tags.values(), key=lambda t: t.name)

    # ── Media ────────────────────────────────────────────────────────

    async def insert_media(self, media: Media) -> Media:
        media.id = next(self._media_ids)
        self._media[media.key] = media
        return media

    async def list_media(self) -> list[Media]:
        return list(self._media.values())

    async def link_post_media(self, post_id: int, keys: list[str]) -> int:
        linked = self._post_media.setdefault(post_id, [])
        created = 0
        for key in keys:
            if key in self._media and key not in linked:
                linked.append(key)
                created += 1
        return created

    async def list_post_media(self, post_id: int) -> list[Media]:
        return [self._media[k] for k in self._post_media.get(post_id, [])]

    # ── Workflow runs ────────────────────────────────────────────────

    async def create_run(self, run: WorkflowRun) -> WorkflowRun:
        self._runs[run.id] = run
        return run

    async def get_run(self, run_id: str) -> WorkflowRun | None:
        return self._runs.get(run_id)

    async def update_run(self, run: WorkflowRun) -> None:
        run.updated_at = utcnow()
        self._runs[run.id] = run

    async def list_runs(
        self,
        *,
        kind: WorkflowKind | None = None,
        status: WorkflowRunStatus | None = None,
    ) -> list[WorkflowRun]:
        runs = list(self._runs.values())
        if kind is not None:
            runs = [r for r in runs if r.kind == kind]
        if status is not None:
            runs = [r for r in runs if r.status == status]
        return sorted(runs, key=lambda r: r.created_at)

    # ── Checkpoints ──────────────────────────────────────────────────

    async def append_checkpoint(self, checkpoint: Checkpoint) -> None:
        log = self._checkpoints.setdefault(checkpoint.task_id, {})
        if checkpoint.seq in log:
            raise ValueError(
                f"Checkpoint {checkpoint.seq} already recorded "
                f"for task {checkpoint.task_id}"
            )
        log[checkpoint.seq] = copy.deepcopy(checkpoint)

    async def list_checkpoints(self, task_id: str) -> list[Checkpoint]:
        log = self._checkpoints.get(task_id, {})
        return [copy.deepcopy(log[seq]) for seq in sorted(log)]
