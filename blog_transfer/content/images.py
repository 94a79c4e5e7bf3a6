"""Image reference discovery and path rewriting.

Two surfaces carry image references: the document tree (``image`` nodes
whose ``src`` points at the serving path ``/images/<key>?…``) and raw
markdown (``![alt](src)``).  Helpers here find, resolve and rewrite
them; uploading the bytes is the workflow's job.
"""

from __future__ import annotations

import copy
import mimetypes
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePosixPath
from typing import Any

from blog_transfer.models.utils import generate_id

IMAGE_URL_PREFIX = "/images/"
EXPORT_IMAGE_PREFIX = "./images/"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

_MARKDOWN_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")


class ImageRefKind(StrEnum):
    RELATIVE = "relative"
    REMOTE = "remote"
    DATA_URI = "data-uri"


@dataclass(frozen=True)
class MarkdownImageRef:
    original: str
    kind: ImageRefKind


# ── Keys and URLs ────────────────────────────────────────────────────


def extract_image_key(src: str | None) -> str | None:
    """Return the storage key of a served image URL.

    ``/images/abc.png?quality=80`` → ``abc.png``.  Sources that do not
    point at the serving path yield ``None``.
    """
    if not src:
        return None
    path = src.split("?", 1)[0].split("#", 1)[0]
    for prefix in (IMAGE_URL_PREFIX, EXPORT_IMAGE_PREFIX):
        if path.startswith(prefix):
            key = path[len(prefix) :]
            return key or None
    return None


def image_url(key: str) -> str:
    """Serving URL stored in document trees for an uploaded image."""
    return f"{IMAGE_URL_PREFIX}{key}?quality=80"


def media_url(key: str) -> str:
    """Canonical URL recorded on the media row."""
    return f"{IMAGE_URL_PREFIX}{key}"


def generate_key(file_name: str) -> str:
    """Fresh storage key that keeps the original file's extension."""
    return f"{generate_id()}{PurePosixPath(file_name).suffix.lower()}"


def content_type_from_key(key: str) -> str:
    content_type, _ = mimetypes.guess_type(key)
    return content_type or DEFAULT_CONTENT_TYPE


# ── Tree surface ─────────────────────────────────────────────────────


def _walk(node: Any):
    if not isinstance(node, dict):
        return
    yield node
    for child in node.get("content") or []:
        yield from _walk(child)


def extract_image_keys(tree: dict[str, Any] | None) -> list[str]:
    """Collect image storage keys from a tree, de-duplicated, in order."""
    keys: dict[str, None] = {}
    for node in _walk(tree):
        if node.get("type") != "image":
            continue
        key = extract_image_key((node.get("attrs") or {}).get("src"))
        if key:
            keys.setdefault(key)
    return list(keys)


def rewrite_tree_image_paths(
    tree: dict[str, Any], rewrite_map: Mapping[str, str]
) -> dict[str, Any]:
    """Return a copy of *tree* with image keys replaced per *rewrite_map*.

    Matching images get ``src=/images/<newKey>?quality=80``; the input
    tree is not modified.
    """
    cloned = copy.deepcopy(tree)
    for node in _walk(cloned):
        if node.get("type") != "image":
            continue
        attrs = node.get("attrs") or {}
        old_key = extract_image_key(attrs.get("src"))
        if old_key and old_key in rewrite_map:
            attrs["src"] = image_url(rewrite_map[old_key])
    return cloned


def make_export_image_rewriter():
    """Rewriter for export: served URLs become archive-relative paths.

    ``/images/<key>?quality=80`` → ``./images/<key>``; anything else is
    left alone.
    """

    def rewrite(src: str) -> str:
        path = src.split("?", 1)[0]
        if path.startswith(IMAGE_URL_PREFIX):
            return EXPORT_IMAGE_PREFIX + path[len(IMAGE_URL_PREFIX) :]
        return src

    return rewrite


# ── Markdown surface ─────────────────────────────────────────────────


def _classify(src: str) -> ImageRefKind:
    if src.startswith("data:"):
        return ImageRefKind.DATA_URI
    if src.startswith(("http://", "https://")):
        return ImageRefKind.REMOTE
    return ImageRefKind.RELATIVE


def extract_markdown_image_refs(markdown: str) -> list[MarkdownImageRef]:
    return [
        MarkdownImageRef(original=m.group(2), kind=_classify(m.group(2)))
        for m in _MARKDOWN_IMAGE_RE.finditer(markdown)
    ]


def rewrite_markdown_image_paths(
    markdown: str, rewrite_map: Mapping[str, str]
) -> str:
    """Substitute image sources that exactly match a key of *rewrite_map*."""
    if not rewrite_map:
        return markdown

    def replace(match: re.Match[str]) -> str:
        alt, src = match.group(1), match.group(2)
        new_src = rewrite_map.get(src)
        if new_src is None:
            return match.group(0)
        return f"![{alt}]({new_src})"

    return _MARKDOWN_IMAGE_RE.sub(replace, markdown)


def resolve_relative_path(base_dir: str, relative: str) -> str:
    """Resolve *relative* against the archive directory *base_dir*.

    >>> resolve_relative_path("a/b/c", "../../img.jpg")
    'a/img.jpg'
    >>> resolve_relative_path("", "./x.jpg")
    'x.jpg'
    """
    cleaned = relative.removeprefix("./")
    if not base_dir:
        return cleaned

    parts = base_dir.split("/")
    for segment in cleaned.split("/"):
        if segment == "..":
            if parts:
                parts.pop()
        elif segment != ".":
            parts.append(segment)
    return "/".join(parts)
