from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from blog_transfer.models.utils import utcnow


class PostStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"


@dataclass
class Tag:
    name: str
    id: int | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Post:
    """A stored blog post with its tags.

    ``content_json`` holds the document tree exactly as the editor
    produced it; it is never rewritten in place.
    """

    title: str
    slug: str
    status: PostStatus = PostStatus.PUBLISHED
    summary: str | None = None
    content_json: dict[str, Any] | None = None
    read_time_in_minutes: int = 1
    published_at: datetime | None = None

    id: int | None = None
    tags: list[Tag] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags]


@dataclass
class Media:
    """An uploaded image stored in the blob store under ``key``."""

    key: str
    url: str
    file_name: str
    mime_type: str
    size_in_bytes: int
    id: int | None = None
    created_at: datetime = field(default_factory=utcnow)
