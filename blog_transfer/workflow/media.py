"""Materialize archive images into the blob store.

Each uploaded image gets a fresh key, a ``Media`` row, and an entry in
the rewrite map handed back to the caller.  Upload problems never fail
the post: they come back as warnings.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import PurePosixPath

from blog_transfer.archive.zip import list_files
from blog_transfer.content.images import (
    ImageRefKind,
    content_type_from_key,
    extract_markdown_image_refs,
    generate_key,
    image_url,
    media_url,
    resolve_relative_path,
    rewrite_markdown_image_paths,
)
from blog_transfer.models import Media, PostEntry
from blog_transfer.storage.base import StorageBackend
from blog_transfer.store.base import Store

logger = logging.getLogger(__name__)


class ImageRelocator:
    def __init__(self, storage: StorageBackend, store: Store) -> None:
        self._storage = storage
        self._store = store

    async def upload(self, data: bytes, file_name: str) -> str:
        """Store *data* under a new key, record its media row, return the key."""
        key = generate_key(file_name)
        mime_type = content_type_from_key(file_name)
        self._storage.write(key, data)
        await self._store.insert_media(
            Media(
                key=key,
                url=media_url(key),
                file_name=file_name,
                mime_type=mime_type,
                size_in_bytes=len(data),
            )
        )
        logger.debug("Uploaded image %s as %s (%d bytes)", file_name, key, len(data))
        return key

    async def relocate_entry_images(
        self, files: Mapping[str, bytes], entry: PostEntry
    ) -> tuple[dict[str, str], list[str]]:
        """Upload ``<prefix>/images/*`` of a native entry.

        Returns ``({old_key: new_key}, warnings)``.
        """
        image_prefix = f"{entry.prefix}/images/"
        rewrite_map: dict[str, str] = {}
        warnings: list[str] = []

        for path in list_files(files, image_prefix):
            data = files[path]
            if not data:
                continue
            old_key = path[len(image_prefix) :]
            try:
                rewrite_map[old_key] = await self.upload(data, old_key)
            except Exception as exc:
                logger.warning(
                    "Image upload failed during import: %s (%s)",
                    path,
                    exc,
                    exc_info=True,
                )
                warnings.append(f"Image upload failed: {old_key}")
        return rewrite_map, warnings

    async def relocate_markdown_images(
        self, files: Mapping[str, bytes], markdown: str, base_dir: str
    ) -> tuple[str, list[str]]:
        """Upload images referenced relatively from a markdown file.

        Returns the markdown with uploaded references pointing at their
        served URLs, and warnings for references that could not be
        resolved or uploaded.
        """
        rewrite_map: dict[str, str] = {}
        warnings: list[str] = []

        for ref in extract_markdown_image_refs(markdown):
            if ref.kind is not ImageRefKind.RELATIVE or ref.original in rewrite_map:
                continue
            resolved = resolve_relative_path(base_dir, ref.original)
            data = files.get(resolved)
            if data is None:
                logger.warning("Image %s not found in archive", resolved)
                warnings.append(f"Image not found in archive: {ref.original}")
                continue
            if not data:
                continue
            file_name = PurePosixPath(resolved).name
            try:
                key = await self.upload(data, file_name)
            except Exception as exc:
                logger.warning(
                    "Markdown image upload failed during import: %s (%s)",
                    resolved,
                    exc,
                    exc_info=True,
                )
                warnings.append(f"Image upload failed: {ref.original}")
                continue
            rewrite_map[ref.original] = image_url(key)

        return rewrite_markdown_image_paths(markdown, rewrite_map), warnings
