from __future__ import annotations

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Abstract blob store: opaque bytes addressed by ``/``-separated keys.

    Archives live under ``exports/`` and ``imports/``; uploaded images
    are stored at the top level under their generated keys.
    """

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """Write data to the given key, replacing any existing value."""
        ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Read data from the given key. Raises ``FileNotFoundError``."""
        ...

    def get(self, key: str) -> bytes | None:
        """Read data from the given key, or ``None`` when it is absent."""
        try:
            return self.read(key)
        except FileNotFoundError:
            return None

    @abstractmethod
    def list_keys(self, prefix: str) -> list[str]:
        """List all keys with the given prefix."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if the key exists."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the given key. Deleting a missing key is a no-op."""
        ...

    @abstractmethod
    def resolve_uri(self, key: str) -> str:
        """Return a URI suitable for external consumption."""
        ...
