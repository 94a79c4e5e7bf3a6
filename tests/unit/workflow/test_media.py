from __future__ import annotations

from blog_transfer.models import PostEntry
from blog_transfer.storage.memory import MemoryStorage
from blog_transfer.store.memory import InMemoryStore
from blog_transfer.workflow.media import ImageRelocator


class BrokenStorage(MemoryStorage):
    def write(self, key: str, data: bytes) -> None:
        raise OSError("read-only")


async def test_upload_records_media(storage: MemoryStorage, store: InMemoryStore):
    key = await ImageRelocator(storage, store).upload(b"png", "Photo.PNG")
    assert key.endswith(".png")
    assert storage.read(key) == b"png"
    (media,) = await store.list_media()
    assert media.key == key
    assert media.url == f"/images/{key}"
    assert media.file_name == "Photo.PNG"
    assert media.mime_type == "image/png"
    assert media.size_in_bytes == 3


async def test_relocate_entry_images(storage: MemoryStorage, store: InMemoryStore):
    files = {
        "posts/a/index.md": b"---\ntitle: A\n---\n",
        "posts/a/images/one.png": b"1",
        "posts/a/images/empty.png": b"",
        "posts/b/images/other.png": b"2",
    }
    entry = PostEntry(dir="a", title="A", prefix="posts/a")
    rewrite_map, warnings = await ImageRelocator(storage, store).relocate_entry_images(
        files, entry
    )
    assert list(rewrite_map) == ["one.png"]
    assert storage.read(rewrite_map["one.png"]) == b"1"
    assert warnings == []


async def test_entry_upload_failure_is_a_warning(store: InMemoryStore):
    files = {"posts/a/images/one.png": b"1"}
    entry = PostEntry(dir="a", title="A", prefix="posts/a")
    rewrite_map, warnings = await ImageRelocator(
        BrokenStorage(), store
    ).relocate_entry_images(files, entry)
    assert rewrite_map == {}
    assert warnings == ["Image upload failed: one.png"]


async def test_relocate_markdown_images(storage: MemoryStorage, store: InMemoryStore):
    markdown = (
        "![a](../assets/a.png)\n\n![again](../assets/a.png)\n\n"
        "![remote](https://e.com/r.png)\n\n![gone](./missing.png)\n"
    )
    files = {"blog/post.md": markdown.encode(), "assets/a.png": b"aaa"}
    out, warnings = await ImageRelocator(storage, store).relocate_markdown_images(
        files, markdown, "blog"
    )

    (media,) = await store.list_media()
    assert out.count(f"/images/{media.key}?quality=80") == 2
    assert "![remote](https://e.com/r.png)" in out
    assert "![gone](./missing.png)" in out
    assert warnings == ["Image not found in archive: ./missing.png"]
