from __future__ import annotations

import io
import zipfile

import pytest
from pydantic import BaseModel

from blog_transfer.archive.zip import (
    build_zip,
    list_directories,
    list_files,
    parse_zip,
    read_text,
    read_validated_json,
)
from blog_transfer.core.exceptions import ArchiveError
from blog_transfer.models import ExportManifest


class _Sample(BaseModel):
    name: str
    count: int


class TestBuildAndParse:
    def test_text_and_binary_entries(self):
        data = build_zip({"a/b.md": "héllo", "a/img.png": b"\x00\x01"})
        files = parse_zip(data)
        assert files == {"a/b.md": "héllo".encode(), "a/img.png": b"\x00\x01"}

    def test_preserves_insertion_order(self):
        files = parse_zip(build_zip({"z.txt": "1", "a.txt": "2", "m.txt": "3"}))
        assert list(files) == ["z.txt", "a.txt", "m.txt"]

    def test_directory_entries_skipped(self):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("posts/", b"")
            zf.writestr("posts/a/index.md", "x")
        assert list(parse_zip(buf.getvalue())) == ["posts/a/index.md"]

    def test_empty_archive(self):
        assert parse_zip(build_zip({})) == {}

    def test_not_a_zip(self):
        with pytest.raises(ArchiveError) as exc_info:
            parse_zip(b"definitely not a zip")
        assert exc_info.value.message.startswith("Archive unreadable")


class TestReadHelpers:
    def test_read_text_missing(self):
        assert read_text({}, "nope.md") is None

    def test_read_text_decodes_utf8(self):
        assert read_text({"a.md": "日本".encode()}, "a.md") == "日本"

    def test_read_validated_json_ok(self):
        files = {"s.json": b'{"name": "x", "count": 2}'}
        assert read_validated_json(files, "s.json", _Sample) == _Sample(
            name="x", count=2
        )

    @pytest.mark.parametrize(
        "content",
        [b"", b"{not json", b'{"name": "x"}', b"[1, 2]"],
    )
    def test_read_validated_json_invalid_returns_none(self, content: bytes):
        assert read_validated_json({"s.json": content}, "s.json", _Sample) is None

    def test_read_validated_json_missing_returns_none(self):
        assert read_validated_json({}, "s.json", _Sample) is None

    def test_manifest_aliases(self):
        files = {
            "manifest.json": (
                b'{"version": "1.0", "exportedAt": "2024-01-01T00:00:00.000Z",'
                b' "postCount": 3, "generator": "blog-transfer"}'
            )
        }
        manifest = read_validated_json(files, "manifest.json", ExportManifest)
        assert manifest is not None
        assert manifest.post_count == 3


class TestListing:
    FILES = {
        "posts/a/index.md": b"",
        "posts/a/images/x.png": b"",
        "posts/b/index.md": b"",
        "manifest.json": b"",
    }

    def test_list_files(self):
        assert list_files(self.FILES, "posts/a/") == [
            "posts/a/index.md",
            "posts/a/images/x.png",
        ]

    def test_list_directories(self):
        assert list_directories(self.FILES, "posts/") == ["a", "b"]

    def test_list_directories_no_match(self):
        assert list_directories(self.FILES, "drafts/") == []
