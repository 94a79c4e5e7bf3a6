"""Canonical post metadata carried in an archive's front-matter block."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from blog_transfer.models.post import PostStatus


class PostFrontmatter(BaseModel):
    """Dialect-independent metadata for one post.

    Field aliases are the keys written to ``index.md``; python code uses
    the snake_case attribute names.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str
    slug: str = ""
    summary: str | None = None
    status: PostStatus = PostStatus.PUBLISHED
    published_at: str | None = Field(default=None, alias="publishedAt")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    read_time_in_minutes: int = Field(default=1, alias="readTimeInMinutes")
    tags: list[str] = Field(default_factory=list)

    def to_raw(self) -> dict:
        """Return the aliased mapping with unset optional fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
