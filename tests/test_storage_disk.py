"""Unit tests for the blob storage backends."""

from pathlib import Path

import pytest

from blog_transfer.storage.disk import DiskStorage
from blog_transfer.storage.memory import MemoryStorage


class TestDiskStorage:
    def test_write_read(self, tmp_path: Path):
        s = DiskStorage(str(tmp_path / "store"))
        s.write("a/b.txt", b"hello")
        assert s.read("a/b.txt") == b"hello"

    def test_get_missing_returns_none(self, tmp_path: Path):
        s = DiskStorage(str(tmp_path / "store"))
        assert s.get("missing.png") is None
        with pytest.raises(FileNotFoundError):
            s.read("missing.png")

    def test_exists(self, tmp_path: Path):
        s = DiskStorage(str(tmp_path / "store"))
        assert not s.exists("missing.txt")
        s.write("found.txt", b"here")
        assert s.exists("found.txt")

    def test_list_keys(self, tmp_path: Path):
        s = DiskStorage(str(tmp_path / "store"))
        s.write("exports/one.zip", b"1")
        s.write("exports/two.zip", b"2")
        s.write("imports/three.zip", b"3")
        assert s.list_keys("exports") == ["exports/one.zip", "exports/two.zip"]

    def test_list_keys_empty(self, tmp_path: Path):
        s = DiskStorage(str(tmp_path / "store"))
        assert s.list_keys("nope") == []

    def test_delete_is_idempotent(self, tmp_path: Path):
        s = DiskStorage(str(tmp_path / "store"))
        s.write("del.txt", b"bye")
        s.delete("del.txt")
        assert not s.exists("del.txt")
        s.delete("del.txt")

    def test_rejects_keys_outside_base(self, tmp_path: Path):
        s = DiskStorage(str(tmp_path / "store"))
        with pytest.raises(ValueError):
            s.write("../escape.txt", b"x")

    def test_resolve_uri(self, tmp_path: Path):
        s = DiskStorage(str(tmp_path / "store"))
        assert s.resolve_uri("a.png").startswith("file://")


class TestMemoryStorage:
    def test_round_trip_and_listing(self):
        s = MemoryStorage()
        s.write("imports/a.zip", b"a")
        s.write("images/k.png", b"k")
        assert s.read("imports/a.zip") == b"a"
        assert s.list_keys("imports/") == ["imports/a.zip"]
        assert s.resolve_uri("images/k.png") == "memory://images/k.png"

    def test_missing(self):
        s = MemoryStorage()
        assert s.get("nope") is None
        with pytest.raises(FileNotFoundError):
            s.read("nope")
        s.delete("nope")
