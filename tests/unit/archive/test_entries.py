from __future__ import annotations

from blog_transfer.archive.entries import (
    enumerate_markdown_posts,
    enumerate_native_posts,
)


def _md(title: str | None, body: str = "Body") -> bytes:
    if title is None:
        return f"---\nauthor: someone\n---\n{body}\n".encode()
    return f"---\ntitle: {title}\n---\n{body}\n".encode()


class TestNativeEnumeration:
    def test_lists_titled_post_directories(self):
        files = {
            "manifest.json": b"{}",
            "posts/first/index.md": _md("First"),
            "posts/first/content.json": b"{}",
            "posts/second/index.md": _md("Second"),
        }
        entries = enumerate_native_posts(files)
        assert [(e.dir, e.title, e.prefix) for e in entries] == [
            ("first", "First", "posts/first"),
            ("second", "Second", "posts/second"),
        ]
        assert all(e.md_path is None for e in entries)

    def test_skips_directory_without_index(self):
        files = {"posts/orphan/images/a.png": b"x"}
        assert enumerate_native_posts(files) == []

    def test_skips_untitled_index(self):
        files = {"posts/a/index.md": _md(None)}
        assert enumerate_native_posts(files) == []


class TestMarkdownEnumeration:
    def test_root_and_nested_files(self):
        files = {
            "hello.md": _md("Hello"),
            "blog/2024/trip.md": _md("Trip"),
            "blog/2024/trip.png": b"img",
        }
        entries = enumerate_markdown_posts(files)
        assert [(e.dir, e.prefix, e.md_path) for e in entries] == [
            ("hello", "", "hello.md"),
            ("trip", "blog/2024", "blog/2024/trip.md"),
        ]

    def test_skips_system_files_and_untitled(self):
        files = {
            "__MACOSX/._hello.md": _md("Ghost"),
            "notes.md": _md(None),
            "README.txt": b"not markdown",
        }
        assert enumerate_markdown_posts(files) == []

    def test_label_uses_title(self):
        entries = enumerate_markdown_posts({"x.md": _md("X")})
        assert entries[0].label == "X"
