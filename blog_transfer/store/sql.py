from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

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
from blog_transfer.store.orm import (
    Base,
    OrmCheckpoint,
    OrmMedia,
    OrmPost,
    OrmTag,
    OrmWorkflowRun,
    post_media,
    post_tags,
)

logger = logging.getLogger(__name__)


def postgres_url(host: str, port: int, database: str, user: str, password: str) -> str:
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{database}"


def sqlite_url(path: str) -> str:
    return f"sqlite+aiosqlite:///{path}"


class SqlStore(Store):
    """Store backed by SQLAlchemy's async ORM.

    Runs on PostgreSQL (asyncpg) or SQLite (aiosqlite).  Wraps the ORM
    models in :mod:`blog_transfer.store.orm` and translates to/from
    domain dataclasses at the boundary.  Slug and tag-name uniqueness
    are enforced with ``INSERT … ON CONFLICT DO NOTHING`` so concurrent
    imports cannot create duplicates.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20,
    ) -> None:
        engine_kwargs: dict[str, Any] = {"echo": echo}
        if url.startswith("postgresql"):
            engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)
        self._engine = create_async_engine(url, **engine_kwargs)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        # One atomic() scope per asyncio task.
        self._scoped_session: ContextVar[AsyncSession | None] = ContextVar(
            f"blog_transfer_sql_session_{id(self)}", default=None
        )

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> SqlStore:
        """Build from ``{"url": …}``, ``{"path": …}`` (SQLite) or the
        PostgreSQL connection fields ``host/port/database/user/password``."""
        config = dict(config)
        if "url" in config:
            url = config.pop("url")
        elif "path" in config:
            url = sqlite_url(config.pop("path"))
        else:
            url = postgres_url(
                config.pop("host", "localhost"),
                int(config.pop("port", 5432)),
                config.pop("database", "blog"),
                config.pop("user", "postgres"),
                config.pop("password", ""),
            )
        return cls(url, **config)

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    def _insert(self, table: Any):
        if self.dialect == "postgresql":
            return pg_insert(table)
        return sqlite_insert(table)

    @asynccontextmanager
    async def _auto_session(self) -> AsyncIterator[AsyncSession]:
        """Yield the scoped session if inside ``atomic()``, else a fresh
        auto-committing session that is closed after use."""
        scoped = self._scoped_session.get()
        if scoped is not None:
            yield scoped
            return
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def reset(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await self.init()

    async def close(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        if self._scoped_session.get() is not None:
            yield
            return
        session = self._session_factory()
        token = self._scoped_session.set(session)
        try:
            yield
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
            self._scoped_session.reset(token)

    # ── Posts ────────────────────────────────────────────────────────

    async def find_full_posts(
        self,
        *,
        ids: list[int] | None = None,
        status: PostStatus | None = None,
    ) -> list[Post]:
        stmt = select(OrmPost).order_by(OrmPost.id)
        if ids is not None:
            stmt = stmt.where(OrmPost.id.in_(ids))
        if status is not None:
            stmt = stmt.where(OrmPost.status == status.value)
        async with self._auto_session() as s:
            rows = list((await s.execute(stmt)).scalars().all())
            return [_post_from_orm(r) for r in rows]

    async def get_post(self, post_id: int) -> Post | None:
        async with self._auto_session() as s:
            row = await s.get(OrmPost, post_id)
            return _post_from_orm(row) if row is not None else None

    async def find_post_by_slug(self, slug: str) -> Post | None:
        async with self._auto_session() as s:
            stmt = select(OrmPost).where(OrmPost.slug == slug)
            row = (await s.execute(stmt)).scalar_one_or_none()
            return _post_from_orm(row) if row is not None else None

    async def slug_exists(self, slug: str) -> bool:
        async with self._auto_session() as s:
            stmt = select(OrmPost.id).where(OrmPost.slug == slug).limit(1)
            return (await s.execute(stmt)).scalar_one_or_none() is not None

    async def insert_post(self, post: Post) -> Post:
        stmt = (
            self._insert(OrmPost)
            .values(
                title=post.title,
                slug=post.slug,
                summary=post.summary,
                status=post.status.value,
                content_json=post.content_json,
                read_time_in_minutes=post.read_time_in_minutes,
                published_at=post.published_at,
                created_at=post.created_at,
                updated_at=post.updated_at,
            )
            .on_conflict_do_nothing(index_elements=["slug"])
            .returning(OrmPost.id)
        )
        async with self._auto_session() as s:
            post_id = (await s.execute(stmt)).scalar_one_or_none()
            if post_id is None:
                raise SlugConflictError(post.slug)
            if post.tags:
                await s.execute(
                    post_tags.insert(),
                    [
                        {"post_id": post_id, "tag_id": tag.id, "position": i}
                        for i, tag in enumerate(post.tags)
                    ],
                )
        post.id = post_id
        return post

    # ── Tags ─────────────────────────────────────────────────────────

    async def get_or_create_tag(self, name: str) -> Tag:
        upsert = (
            self._insert(OrmTag)
            .values(name=name, created_at=utcnow())
            .on_conflict_do_nothing(index_elements=["name"])
        )
        async with self._auto_session() as s:
            await s.execute(upsert)
            row = (
                await s.execute(select(OrmTag).where(OrmTag.name == name))
            ).scalar_one()
            return _tag_from_orm(row)

    async def list_tags(self) -> list[Tag]:
        async with self._auto_session() as s:
            rows = (await s.execute(select(OrmTag).order_by(OrmTag.name))).scalars()
            return [_tag_from_orm(r) for r in rows]

    # ── Media ────────────────────────────────────────────────────────

    async def insert_media(self, media: Media) -> Media:
        async with self._auto_session() as s:
            row = OrmMedia(
                key=media.key,
                url=media.url,
                file_name=media.file_name,
                mime_type=media.mime_type,
                size_in_bytes=media.size_in_bytes,
                created_at=media.created_at,
            )
            s.add(row)
            await s.flush()
            media.id = row.id
        return media

    async def list_media(self) -> list[Media]:
        async with self._auto_session() as s:
            rows = (await s.execute(select(OrmMedia).order_by(OrmMedia.id))).scalars()
            return [_media_from_orm(r) for r in rows]

    async def link_post_media(self, post_id: int, keys: list[str]) -> int:
        if not keys:
            return 0
        async with self._auto_session() as s:
            media_ids = (
                await s.execute(select(OrmMedia.id).where(OrmMedia.key.in_(keys)))
            ).scalars().all()
            if not media_ids:
                return 0
            stmt = (
                self._insert(post_media)
                .values([{"post_id": post_id, "media_id": mid} for mid in media_ids])
                .on_conflict_do_nothing()
            )
            result = await s.execute(stmt)
            return result.rowcount  # type: ignore[return-value]

    async def list_post_media(self, post_id: int) -> list[Media]:
        async with self._auto_session() as s:
            stmt = (
                select(OrmMedia)
                .join(post_media, post_media.c.media_id == OrmMedia.id)
                .where(post_media.c.post_id == post_id)
                .order_by(OrmMedia.id)
            )
            rows = (await s.execute(stmt)).scalars()
            return [_media_from_orm(r) for r in rows]

    # ── Workflow runs ────────────────────────────────────────────────

    async def create_run(self, run: WorkflowRun) -> WorkflowRun:
        async with self._auto_session() as s:
            row = OrmWorkflowRun(
                id=run.id,
                kind=run.kind.value,
                params=run.params,
                status=run.status.value,
                created_at=run.created_at,
                updated_at=run.updated_at,
            )
            s.add(row)
            await s.flush()
        return run

    async def get_run(self, run_id: str) -> WorkflowRun | None:
        async with self._auto_session() as s:
            row = await s.get(OrmWorkflowRun, run_id)
            return _run_from_orm(row) if row is not None else None

    async def update_run(self, run: WorkflowRun) -> None:
        async with self._auto_session() as s:
            row = await s.get(OrmWorkflowRun, run.id)
            if row is None:
                raise ValueError(f"WorkflowRun {run.id} not found")
            run.updated_at = utcnow()
            row.status = run.status.value
            row.params = run.params
            row.updated_at = run.updated_at
            await s.flush()

    async def list_runs(
        self,
        *,
        kind: WorkflowKind | None = None,
        status: WorkflowRunStatus | None = None,
    ) -> list[WorkflowRun]:
        stmt = select(OrmWorkflowRun).order_by(OrmWorkflowRun.created_at)
        if kind is not None:
            stmt = stmt.where(OrmWorkflowRun.kind == kind.value)
        if status is not None:
            stmt = stmt.where(OrmWorkflowRun.status == status.value)
        async with self._auto_session() as s:
            rows = (await s.execute(stmt)).scalars()
            return [_run_from_orm(r) for r in rows]

    # ── Checkpoints ──────────────────────────────────────────────────

    async def append_checkpoint(self, checkpoint: Checkpoint) -> None:
        async with self._auto_session() as s:
            s.add(
                OrmCheckpoint(
                    task_id=checkpoint.task_id,
                    seq=checkpoint.seq,
                    name=checkpoint.name,
                    result=checkpoint.result,
                    error=checkpoint.error,
                    created_at=checkpoint.created_at,
                )
            )
            await s.flush()

    async def list_checkpoints(self, task_id: str) -> list[Checkpoint]:
        stmt = (
            select(OrmCheckpoint)
            .where(OrmCheckpoint.task_id == task_id)
            .order_by(OrmCheckpoint.seq)
        )
        async with self._auto_session() as s:
            rows = (await s.execute(stmt)).scalars()
            return [_checkpoint_from_orm(r) for r in rows]


# ── ORM → domain ─────────────────────────────────────────────────────


def _tag_from_orm(row: OrmTag) -> Tag:
    return Tag(name=row.name, id=row.id, created_at=row.created_at)


def _post_from_orm(row: OrmPost) -> Post:
    return Post(
        title=row.title,
        slug=row.slug,
        status=PostStatus(row.status),
        summary=row.summary,
        content_json=row.content_json,
        read_time_in_minutes=row.read_time_in_minutes,
        published_at=row.published_at,
        id=row.id,
        tags=[_tag_from_orm(t) for t in row.tags],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _media_from_orm(row: OrmMedia) -> Media:
    return Media(
        key=row.key,
        url=row.url,
        file_name=row.file_name,
        mime_type=row.mime_type,
        size_in_bytes=row.size_in_bytes,
        id=row.id,
        created_at=row.created_at,
    )


def _run_from_orm(row: OrmWorkflowRun) -> WorkflowRun:
    return WorkflowRun(
        kind=WorkflowKind(row.kind),
        params=row.params,
        id=row.id,
        status=WorkflowRunStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _checkpoint_from_orm(row: OrmCheckpoint) -> Checkpoint:
    return Checkpoint(
        task_id=row.task_id,
        seq=row.seq,
        name=row.name,
        result=row.result,
        error=row.error,
        created_at=row.created_at,
    )
