"""Front-matter parsing, normalization and serialization.

Archives written by other blogging platforms spell the same metadata in
different ways (Hugo ``url``/``lastmod``, Hexo ``categories``, Jekyll
``permalink``/``excerpt``…).  :func:`normalize_frontmatter` maps them all
onto :class:`PostFrontmatter`.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import Any

import frontmatter
import yaml
from pydantic import ValidationError

from blog_transfer.models.metadata import PostFrontmatter
from blog_transfer.models.post import PostStatus
from blog_transfer.models.utils import to_iso

logger = logging.getLogger(__name__)

_SLUG_KEYS = ("slug", "url", "permalink")
_SUMMARY_KEYS = ("summary", "description", "excerpt")
_PUBLISHED_KEYS = ("publishedAt", "date", "published_at")
_CREATED_KEYS = ("createdAt", "created_at", "date")
_UPDATED_KEYS = ("updatedAt", "updated_at", "lastmod", "modified")
_TAG_KEYS = ("tags", "categories")


def parse_frontmatter(raw: str) -> tuple[dict[str, Any], str]:
    """Split *raw* into ``(metadata, body)``.

    A missing or malformed metadata block yields ``({}, raw)``; this
    function never raises.
    """
    try:
        post = frontmatter.loads(raw)
    except (yaml.YAMLError, ValueError) as exc:
        logger.warning("Malformed front matter, treating file as body: %s", exc)
        return {}, raw
    return dict(post.metadata), post.content


def stringify_frontmatter(meta: PostFrontmatter, body: str) -> str:
    """Render *meta* as a YAML block followed by *body*.

    Optional fields that are unset are omitted from the block.
    """
    post = frontmatter.Post(body, **meta.to_raw())
    return frontmatter.dumps(post, sort_keys=False) + "\n"


def normalize_frontmatter(data: dict[str, Any]) -> PostFrontmatter | None:
    """Map any supported dialect onto the canonical metadata record.

    Returns ``None`` only when no usable title is present.  Normalizing
    an already-canonical mapping returns an equal record.
    """
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        logger.info("Front matter has no usable title: keys=%s", sorted(data))
        return None

    mapped: dict[str, Any] = {"title": title}

    slug_source = _first(data, _SLUG_KEYS)
    if isinstance(slug_source, str):
        # /posts/my-post/ -> my-post
        segments = [s for s in slug_source.split("/") if s]
        mapped["slug"] = segments[-1] if segments else slug_source

    summary = _first(data, _SUMMARY_KEYS)
    if isinstance(summary, str):
        mapped["summary"] = summary

    mapped["status"] = _normalize_status(data)

    for field, keys in (
        ("publishedAt", _PUBLISHED_KEYS),
        ("createdAt", _CREATED_KEYS),
        ("updatedAt", _UPDATED_KEYS),
    ):
        value = _to_iso_string(_first(data, keys))
        if value is not None:
            mapped[field] = value

    read_time = data.get("readTimeInMinutes")
    if isinstance(read_time, int) and not isinstance(read_time, bool):
        mapped["readTimeInMinutes"] = read_time

    tags = _first(data, _TAG_KEYS)
    if isinstance(tags, list):
        mapped["tags"] = [t for t in tags if isinstance(t, str)]

    try:
        return PostFrontmatter.model_validate(mapped)
    except ValidationError as exc:
        logger.error("Front matter normalization failed: %s (data=%s)", exc, mapped)
        return None


def _first(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the value of the first key present with a non-null value."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _normalize_status(data: dict[str, Any]) -> PostStatus:
    if data.get("draft") is True:
        return PostStatus.DRAFT
    status = data.get("status")
    if isinstance(status, str):
        try:
            return PostStatus(status.strip().lower())
        except ValueError:
            logger.warning("Unknown post status %r, defaulting to published", status)
    return PostStatus.PUBLISHED


def _to_iso_string(value: Any) -> str | None:
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return to_iso(datetime(value.year, value.month, value.day, tzinfo=UTC))
    if isinstance(value, str) and value.strip():
        try:
            return to_iso(datetime.fromisoformat(value.strip()))
        except ValueError:
            return None
    return None
