"""Import one post entry from an opened archive."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from blog_transfer.archive.entries import CONTENT_FILE, INDEX_FILE
from blog_transfer.archive.zip import read_text, read_validated_json
from blog_transfer.content.frontmatter import normalize_frontmatter, parse_frontmatter
from blog_transfer.content.images import extract_image_keys, rewrite_tree_image_paths
from blog_transfer.content.parser import markdown_to_tree
from blog_transfer.content.slug import slugify
from blog_transfer.core.exceptions import EntryImportError, SlugConflictError
from blog_transfer.models import ImportMode, Post, PostEntry, PostFrontmatter, PostStatus
from blog_transfer.models.utils import utcnow
from blog_transfer.storage.base import StorageBackend
from blog_transfer.store.base import Store
from blog_transfer.workflow.media import ImageRelocator

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    title: str
    slug: str
    skipped: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class _EntrySource:
    metadata: dict[str, Any]
    body: str
    tree: dict[str, Any] | None
    md_path: str


def _read_entry(
    files: Mapping[str, bytes], entry: PostEntry, mode: ImportMode
) -> _EntrySource:
    if mode is ImportMode.NATIVE:
        md_path = f"{entry.prefix}/{INDEX_FILE}"
        tree = read_validated_json(
            files, f"{entry.prefix}/{CONTENT_FILE}", dict[str, Any]
        )
    else:
        md_path = entry.md_path or f"{entry.prefix}/{entry.dir}.md"
        tree = None

    text = read_text(files, md_path)
    if text is None:
        return _EntrySource({}, "", tree, md_path)
    metadata, body = parse_frontmatter(text)
    return _EntrySource(metadata, body, tree, md_path)


def _convert(body: str, warnings: list[str]) -> dict[str, Any] | None:
    try:
        return markdown_to_tree(body)
    except Exception as exc:
        logger.warning("Markdown conversion failed: %s", exc, exc_info=True)
        warnings.append(f"Markdown conversion failed: {exc}")
        return None


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


async def _resolve_tags(store: Store, names: list[str]):
    # dict.fromkeys keeps first-seen order while dropping repeats.
    return [await store.get_or_create_tag(name) for name in dict.fromkeys(names)]


def _build_post(meta: PostFrontmatter, slug: str, tree: dict[str, Any] | None) -> Post:
    now = utcnow()
    published_at = _parse_timestamp(meta.published_at)
    if published_at is None and meta.status is PostStatus.PUBLISHED:
        published_at = now
    return Post(
        title=meta.title,
        slug=slug,
        status=meta.status,
        summary=meta.summary,
        content_json=tree,
        read_time_in_minutes=meta.read_time_in_minutes,
        published_at=published_at,
        created_at=_parse_timestamp(meta.created_at) or now,
        updated_at=_parse_timestamp(meta.updated_at) or now,
    )


async def import_single_post(
    files: Mapping[str, bytes],
    entry: PostEntry,
    mode: ImportMode,
    *,
    store: Store,
    storage: StorageBackend,
) -> ImportResult:
    """Import one entry into the store.

    Order matters: metadata is normalized and the slug checked before any
    image is uploaded, so a skipped entry leaves the store untouched.

    Raises:
        EntryImportError: when the entry's metadata has no usable title.
    """
    source = _read_entry(files, entry, mode)
    meta = normalize_frontmatter(source.metadata)
    if meta is None:
        raise EntryImportError("Unable to parse post metadata: a title is required")

    slug = slugify(meta.slug or meta.title)
    if await store.slug_exists(slug):
        logger.info("Slug %r already exists, skipping %r", slug, meta.title)
        return ImportResult(title=meta.title, slug=slug, skipped=True)

    warnings: list[str] = []
    relocator = ImageRelocator(storage, store)
    tree = source.tree

    if mode is ImportMode.NATIVE:
        if tree is None and source.body.strip():
            tree = _convert(source.body, warnings)
        if tree is not None:
            rewrite_map, image_warnings = await relocator.relocate_entry_images(
                files, entry
            )
            warnings.extend(image_warnings)
            if rewrite_map:
                tree = rewrite_tree_image_paths(tree, rewrite_map)
    elif source.body.strip():
        base_dir = source.md_path.rpartition("/")[0]
        body, image_warnings = await relocator.relocate_markdown_images(
            files, source.body, base_dir
        )
        warnings.extend(image_warnings)
        tree = _convert(body, warnings)

    post = _build_post(meta, slug, tree)
    try:
        async with store.atomic():
            post.tags = await _resolve_tags(store, meta.tags)
            post = await store.insert_post(post)
            assert post.id is not None
            if tree is not None:
                await store.link_post_media(post.id, extract_image_keys(tree))
    except SlugConflictError:
        logger.info("Lost slug race for %r, skipping %r", slug, meta.title)
        return ImportResult(title=meta.title, slug=slug, skipped=True, warnings=warnings)

    logger.info("Imported post %r as /%s", post.title, post.slug)
    return ImportResult(title=post.title, slug=post.slug, warnings=warnings)
