from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Generic, TypeVar

from blog_transfer.status.base import StatusStore
from blog_transfer.storage.base import StorageBackend
from blog_transfer.store.base import Store

DAY_SECONDS = 24 * 60 * 60

T = TypeVar("T")


@dataclass(frozen=True)
class WorkflowSettings:
    """Tunables shared by the export and import workflows."""

    progress_ttl_seconds: float = DAY_SECONDS
    export_retention_seconds: float = DAY_SECONDS
    step_max_attempts: int = 3
    step_timeout_seconds: float = 300.0
    # Must stay below step_timeout_seconds so a stuck post fails alone.
    entry_timeout_seconds: float = 120.0
    step_retry_initial_wait: float = 1.0
    step_retry_max_wait: float = 30.0

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> WorkflowSettings:
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ValueError(
                f"Unknown workflow settings: {sorted(unknown)}. Available: {sorted(known)}"
            )
        return cls(**config)


class _Registry(Generic[T]):
    """Provider name → backend class, filled on first use.

    Built-in backends are imported lazily so that, for example, the SQL
    store's engine dependencies load only when a SQL provider is asked
    for.  A backend with a ``from_config`` classmethod builds itself from
    the provider's config mapping; any other class receives it as
    keyword arguments.
    """

    def __init__(self, kind: str) -> None:
        self._kind = kind
        self._backends: dict[str, type[T]] = {}
        self._builtins_ready = False

    def register(self, name: str, cls: type[T]) -> None:
        self._backends[name] = cls

    def providers(self) -> list[str]:
        self._ensure_builtins()
        return sorted(self._backends)

    def build(self, provider: str, config: dict[str, Any]) -> T:
        self._ensure_builtins()
        cls = self._backends.get(provider)
        if cls is None:
            raise ValueError(
                f"Unknown {self._kind} provider {provider!r}; "
                f"choose one of {sorted(self._backends)}"
            )
        if hasattr(cls, "from_config"):
            return cls.from_config(config)  # type: ignore[return-value]
        return cls(**config)  # type: ignore[return-value]

    def _ensure_builtins(self) -> None:
        if not self._builtins_ready:
            self._register_builtins()
            self._builtins_ready = True

    def _register_builtins(self) -> None:
        pass


class _StorageRegistry(_Registry[StorageBackend]):
    def _register_builtins(self) -> None:
        from blog_transfer.storage.disk import DiskStorage
        from blog_transfer.storage.memory import MemoryStorage

        self.register("disk", DiskStorage)
        self.register("memory", MemoryStorage)


class _StoreRegistry(_Registry[Store]):
    def _register_builtins(self) -> None:
        from blog_transfer.store.memory import InMemoryStore
        from blog_transfer.store.sql import SqlStore

        self.register("memory", InMemoryStore)
        self.register("postgres", SqlStore)
        self.register("sqlite", SqlStore)


class _StatusRegistry(_Registry[StatusStore]):
    def _register_builtins(self) -> None:
        from blog_transfer.status.memory import InMemoryStatusStore

        self.register("memory", InMemoryStatusStore)


storage_registry = _StorageRegistry("storage")
store_registry = _StoreRegistry("store")
status_registry = _StatusRegistry("status")


def _build(registry: _Registry[T], section: dict[str, Any]) -> T:
    return registry.build(section.get("provider", "memory"), section.get("config", {}))


def parse_config(
    config: dict[str, Any],
) -> tuple[StorageBackend, Store, StatusStore, WorkflowSettings]:
    """Build the collaborators described by *config*.

    Expected shape::

        {
            "storage": {"provider": "disk", "config": {"base_path": "./data"}},
            "store": {"provider": "sqlite", "config": {"path": "blog.db"}},
            "status": {"provider": "memory"},
            "workflow": {"step_max_attempts": 5},
        }

    Every section is optional.  Missing backend sections fall back to the
    in-memory provider and missing workflow keys to their defaults.

    Raises:
        ValueError: for an unknown provider or workflow setting.
    """
    storage = _build(storage_registry, config.get("storage", {}))
    store = _build(store_registry, config.get("store", {}))
    status = _build(status_registry, config.get("status", {}))
    settings = WorkflowSettings.from_config(config.get("workflow", {}))
    return storage, store, status, settings
