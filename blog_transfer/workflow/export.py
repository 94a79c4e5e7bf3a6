"""Export workflow: stored posts → downloadable archive.

Steps:

1. ``fetch posts`` selects the posts (plain JSON result).
2. ``build and upload export`` converts every post, collects images,
   builds the zip and writes it to ``exports/<task>.zip``.  Image bytes
   cannot cross a step boundary, so the whole per-post loop lives in
   this one step.
3. ``cleanup delay`` / ``cleanup export zip`` remove the archive once
   the retention window has passed.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import Any

from pydantic import ValidationError

from blog_transfer.archive.entries import (
    CONTENT_FILE,
    INDEX_FILE,
    MANIFEST_FILE,
    POSTS_PREFIX,
    TAGS_FILE,
)
from blog_transfer.archive.zip import build_zip
from blog_transfer.content.frontmatter import stringify_frontmatter
from blog_transfer.content.images import extract_image_keys, make_export_image_rewriter
from blog_transfer.content.markdown import tree_to_markdown
from blog_transfer.models import (
    EXPORT_GENERATOR,
    EXPORT_MANIFEST_VERSION,
    ExportManifest,
    Post,
    PostFrontmatter,
    PostStatus,
    TagListing,
    TaskProgress,
    TaskStatus,
)
from blog_transfer.models.task import export_archive_key, export_progress_key
from blog_transfer.models.utils import to_iso, utcnow
from blog_transfer.workflow.base import BaseWorkflow

logger = logging.getLogger(__name__)

NO_POSTS_WARNING = "No posts found to export"
CANCELLED_WARNING = "Export cancelled"


class ExportWorkflow(BaseWorkflow):
    progress_key = staticmethod(export_progress_key)

    @property
    def post_ids(self) -> list[int] | None:
        return self.run_record.params.get("post_ids") or None

    @property
    def status_filter(self) -> PostStatus | None:
        value = self.run_record.params.get("status")
        return PostStatus(value) if value else None

    async def execute(self) -> None:
        posts = await self.step.do("fetch posts", self._fetch_posts)
        logger.info("Posts fetched: task=%s count=%d", self.task_id, len(posts))

        if not posts:
            await self.progress.write(
                TaskProgress(status=TaskStatus.COMPLETED, warnings=[NO_POSTS_WARNING])
            )
            return

        await self.check_cancelled(CANCELLED_WARNING)
        result = await self.step.do(
            "build and upload export", lambda: self._build_and_upload(posts)
        )
        logger.info(
            "Export archive ready: task=%s posts=%d key=%s",
            self.task_id,
            len(posts),
            result["downloadKey"],
        )

        cleanup_at = utcnow() + timedelta(
            seconds=self._settings.export_retention_seconds
        )
        await self.step.sleep_until("cleanup delay", cleanup_at)
        await self.step.do("cleanup export zip", self._cleanup)

    async def _fetch_posts(self) -> list[dict[str, Any]]:
        posts = await self._store.find_full_posts(
            ids=self.post_ids, status=self.status_filter
        )
        return [_post_to_json(p) for p in posts]

    async def _build_and_upload(self, posts: list[dict[str, Any]]) -> dict[str, Any]:
        files: dict[str, bytes | str] = {}
        warnings: list[str] = []
        tags: dict[str, TagListing] = {}
        rewriter = make_export_image_rewriter()

        for i, post in enumerate(posts):
            prefix = f"{POSTS_PREFIX}{post['slug']}"
            meta = PostFrontmatter.model_validate(post["meta"])
            tree = post["content_json"]

            body = ""
            if tree:
                try:
                    body = tree_to_markdown(tree, rewrite_image_src=rewriter)
                except ValidationError as exc:
                    logger.warning(
                        "Markdown conversion failed for post %r: %s", meta.title, exc
                    )
                    warnings.append(f"Markdown conversion failed (post: {meta.title})")
            files[f"{prefix}/{INDEX_FILE}"] = stringify_frontmatter(meta, body)

            if tree:
                files[f"{prefix}/{CONTENT_FILE}"] = json.dumps(
                    tree, indent=2, ensure_ascii=False
                )
                for key in extract_image_keys(tree):
                    data = self._storage.get(key)
                    if data is None:
                        logger.warning("Image %s missing for post %r", key, meta.title)
                        warnings.append(
                            f"Image {key} not found in storage (post: {meta.title})"
                        )
                        continue
                    files[f"{prefix}/images/{key}"] = data

            for tag in post["tags"]:
                tags[tag["name"]] = TagListing.model_validate(tag)

            await self.progress.write(
                TaskProgress(
                    status=TaskStatus.PROCESSING,
                    total=len(posts),
                    completed=i + 1,
                    current=meta.title,
                    warnings=warnings,
                )
            )
            logger.debug("Post exported: %d/%d %s", i + 1, len(posts), post["slug"])

        files[TAGS_FILE] = _dump_json(
            [t.model_dump(by_alias=True) for t in tags.values()]
        )
        manifest = ExportManifest(
            version=EXPORT_MANIFEST_VERSION,
            exported_at=to_iso(utcnow()),
            post_count=len(posts),
            generator=EXPORT_GENERATOR,
        )
        files[MANIFEST_FILE] = _dump_json(manifest.model_dump(by_alias=True))

        key = export_archive_key(self.task_id)
        self._storage.write(key, build_zip(files))

        await self.progress.write(
            TaskProgress(
                status=TaskStatus.COMPLETED,
                total=len(posts),
                completed=len(posts),
                warnings=warnings,
                download_key=key,
            )
        )
        return {"downloadKey": key, "warnings": warnings}

    async def _cleanup(self) -> None:
        key = export_archive_key(self.task_id)
        self._storage.delete(key)
        logger.info("Export archive %s removed after retention window", key)


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _post_to_json(post: Post) -> dict[str, Any]:
    meta = PostFrontmatter(
        title=post.title,
        slug=post.slug,
        summary=post.summary,
        status=post.status,
        published_at=to_iso(post.published_at) if post.published_at else None,
        created_at=to_iso(post.created_at),
        updated_at=to_iso(post.updated_at),
        read_time_in_minutes=post.read_time_in_minutes,
        tags=post.tag_names,
    )
    return {
        "slug": post.slug,
        "meta": meta.model_dump(mode="json", by_alias=True),
        "content_json": post.content_json,
        "tags": [
            {"name": t.name, "createdAt": to_iso(t.created_at)} for t in post.tags
        ],
    }
