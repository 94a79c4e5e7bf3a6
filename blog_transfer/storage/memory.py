from __future__ import annotations

from blog_transfer.storage.base import StorageBackend


class MemoryStorage(StorageBackend):
    """Dict-backed storage for tests and ephemeral runs."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def write(self, key: str, data: bytes) -> None:
        self._blobs[key] = bytes(data)

    def read(self, key: str) -> bytes:
        try:
            return self._blobs[key]
        except KeyError:
            raise FileNotFoundError(key) from None

    def list_keys(self, prefix: str) -> list[str]:
        return sorted(k for k in self._blobs if k.startswith(prefix))

    def exists(self, key: str) -> bool:
        return key in self._blobs

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def resolve_uri(self, key: str) -> str:
        return f"memory://{key}"
