from __future__ import annotations

from pathlib import Path

from blog_transfer.storage.base import StorageBackend


class DiskStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, base_path: str) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        path = (self._base / key).resolve()
        if not path.is_relative_to(self._base.resolve()):
            raise ValueError(f"Storage key escapes base directory: {key!r}")
        return path

    # ---- interface ----

    def write(self, key: str, data: bytes) -> None:
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def read(self, key: str) -> bytes:
        return self._resolve(key).read_bytes()

    def list_keys(self, prefix: str) -> list[str]:
        base = self._base.resolve()
        keys: list[str] = []
        for p in base.rglob("*"):
            if not p.is_file():
                continue
            key = p.relative_to(base).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    def delete(self, key: str) -> None:
        path = self._resolve(key)
        if path.is_file():
            path.unlink()

    def resolve_uri(self, key: str) -> str:
        return self._resolve(key).as_uri()
