"""Discover candidate posts inside an opened archive.

Enumeration only reads each entry's front matter; bodies, trees and
images are loaded later, one entry at a time, by the import workflow.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import PurePosixPath

from blog_transfer.archive.zip import list_directories, read_text
from blog_transfer.content.frontmatter import normalize_frontmatter, parse_frontmatter
from blog_transfer.models.task import PostEntry

logger = logging.getLogger(__name__)

POSTS_PREFIX = "posts/"
INDEX_FILE = "index.md"
CONTENT_FILE = "content.json"
MANIFEST_FILE = "manifest.json"
TAGS_FILE = "tags.json"
MARKDOWN_SUFFIX = ".md"
SYSTEM_PREFIX = "__MACOSX"


def _title_of(files: Mapping[str, bytes], path: str) -> str | None:
    text = read_text(files, path)
    if not text:
        return None
    metadata, _ = parse_frontmatter(text)
    normalized = normalize_frontmatter(metadata)
    return normalized.title if normalized else None


def enumerate_native_posts(files: Mapping[str, bytes]) -> list[PostEntry]:
    """List ``posts/<dir>/`` entries whose ``index.md`` has a title."""
    entries: list[PostEntry] = []
    for dir_name in list_directories(files, POSTS_PREFIX):
        prefix = f"{POSTS_PREFIX}{dir_name}"
        title = _title_of(files, f"{prefix}/{INDEX_FILE}")
        if title is None:
            logger.debug("Skipping %s: no usable front matter", prefix)
            continue
        entries.append(PostEntry(dir=dir_name, title=title, prefix=prefix))
    return entries


def enumerate_markdown_posts(files: Mapping[str, bytes]) -> list[PostEntry]:
    """List every titled ``*.md`` file outside the system prefix."""
    entries: list[PostEntry] = []
    for path in files:
        if not path.endswith(MARKDOWN_SUFFIX) or path.startswith(SYSTEM_PREFIX):
            continue
        title = _title_of(files, path)
        if title is None:
            logger.debug("Skipping %s: no usable front matter", path)
            continue
        posix = PurePosixPath(path)
        parent = str(posix.parent)
        entries.append(
            PostEntry(
                dir=posix.name.removesuffix(MARKDOWN_SUFFIX) or path,
                title=title,
                prefix="" if parent == "." else parent,
                md_path=path,
            )
        )
    return entries
