"""Slug generation for imported posts."""

import re

DEFAULT_SLUG = "untitled"

_SEPARATORS_RE = re.compile(r"[\s_]+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9\-\u4e00-\u9fa5]+")
_DASHES_RE = re.compile(r"-{2,}")


def slugify(text: str | None) -> str:
    """Convert text to a lowercase, hyphen-separated URL-safe slug.

    ASCII letters, digits and CJK ideographs are kept; everything else
    is dropped.  Returns ``"untitled"`` when nothing survives.
    """
    if not text:
        return DEFAULT_SLUG
    slug = _SEPARATORS_RE.sub("-", text.strip().lower())
    slug = _DISALLOWED_RE.sub("", slug)
    slug = _DASHES_RE.sub("-", slug).strip("-")
    return slug or DEFAULT_SLUG
