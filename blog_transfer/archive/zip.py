"""Zip archive codec.

An archive is an ordered mapping of ``/``-separated relative paths to raw
bytes.  Helpers here are pure: they never touch storage, they only turn
bytes into mappings and back.
"""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Mapping
from pathlib import PurePosixPath
from typing import TypeAlias, TypeVar

from pydantic import TypeAdapter, ValidationError

from blog_transfer.core.exceptions import ArchiveError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ArchiveFiles: TypeAlias = dict[str, bytes]

COMPRESSION_LEVEL = 6


def build_zip(files: Mapping[str, bytes | str]) -> bytes:
    """Create an in-memory zip archive from ``{path: content}``.

    ``str`` content is encoded as UTF-8.  Insertion order is kept.
    """
    buf = io.BytesIO()
    with zipfile.ZipFile(
        buf, "w", zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL
    ) as zf:
        for name, data in files.items():
            if isinstance(data, str):
                data = data.encode("utf-8")
            zf.writestr(name, data)
    return buf.getvalue()


def parse_zip(data: bytes) -> ArchiveFiles:
    """Read every file entry of a zip archive into memory.

    Directory entries are skipped.  Raises :class:`ArchiveError` when
    *data* is not a readable zip container.
    """
    files: ArchiveFiles = {}
    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                name = PurePosixPath(info.filename).as_posix()
                files[name] = zf.read(info.filename)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError) as exc:
        raise ArchiveError(str(exc)) from exc
    return files


def read_text(files: Mapping[str, bytes], path: str) -> str | None:
    """Return the UTF-8 text stored at *path*, or ``None`` if absent."""
    if path not in files:
        return None
    return files[path].decode("utf-8", errors="replace")


def read_validated_json(
    files: Mapping[str, bytes],
    path: str,
    schema: type[T],
) -> T | None:
    """Read *path* as JSON and validate it against *schema*.

    Returns ``None`` (and logs) when the file is missing, empty, not
    valid JSON, or does not match the schema.  Never raises.
    """
    text = read_text(files, path)
    if not text:
        return None
    try:
        return TypeAdapter(schema).validate_json(text)
    except ValidationError as exc:
        logger.warning(
            "Archive JSON validation failed for %s: %d error(s): %s",
            path,
            exc.error_count(),
            exc.errors(include_url=False)[:3],
        )
        return None


def list_files(files: Mapping[str, bytes], prefix: str) -> list[str]:
    """Return archive paths starting with *prefix*, in archive order."""
    return [p for p in files if p.startswith(prefix)]


def list_directories(files: Mapping[str, bytes], prefix: str) -> list[str]:
    """Return the distinct first path segments below *prefix*.

    ``prefix="posts/"`` over ``posts/a/index.md`` and ``posts/b/x.png``
    yields ``["a", "b"]``.
    """
    dirs: dict[str, None] = {}
    for path in files:
        if not path.startswith(prefix):
            continue
        name = path[len(prefix) :].split("/", 1)[0]
        if name:
            dirs.setdefault(name)
    return list(dirs)
