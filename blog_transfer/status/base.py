from __future__ import annotations

from abc import ABC, abstractmethod


class StatusStore(ABC):
    """Abstract key/value cache holding short-lived task progress records.

    Values are opaque strings (JSON-encoded progress); every entry
    carries its own time-to-live.
    """

    @abstractmethod
    async def set(self, key: str, value: str, *, ttl_seconds: float) -> None:
        """Store *value* under *key*, replacing it, for *ttl_seconds*."""
        ...

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the live value for *key*, or ``None`` if absent/expired."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*. Deleting a missing key is a no-op."""
        ...
