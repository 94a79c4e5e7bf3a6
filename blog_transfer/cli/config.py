"""Configuration management for the blog-transfer CLI.

Reads/writes a TOML config file and provides a typed Config dataclass.
Default location: ``~/.config/blog-transfer/config.toml``.
Override with the ``BLOG_TRANSFER_CONFIG`` environment variable.

Data directory layout::

    data/
      blog.db      <- SQLite store (default store provider)
      output/      <- downloaded export archives land here
      storage/     <- media, uploaded archives and export zips
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_DEFAULT_CONFIG_DIR = Path("~/.config/blog-transfer").expanduser()
_DEFAULT_DATA_DIR = Path("./data")


def _config_path() -> Path:
    env = os.environ.get("BLOG_TRANSFER_CONFIG")
    if env:
        return Path(env).expanduser()
    return _DEFAULT_CONFIG_DIR / "config.toml"


@dataclass
class Config:
    # Store backend: "sqlite" (default, file under data_dir), "postgres" or "memory"
    store_provider: str = "sqlite"

    # Full SQLAlchemy URL; overrides the provider's default location
    database_url: str = ""

    data_dir: str = str(_DEFAULT_DATA_DIR)

    # Passed through as the ``workflow`` section of the library config
    workflow: dict[str, Any] | None = None

    @property
    def output_dir(self) -> Path:
        return Path(self.data_dir) / "output"

    @property
    def storage_path(self) -> str:
        return str(Path(self.data_dir) / "storage")

    @property
    def sqlite_path(self) -> str:
        return str(Path(self.data_dir) / "blog.db")

    @property
    def is_persistent(self) -> bool:
        return self.store_provider != "memory"

    def ensure_dirs(self) -> None:
        """Create the data directory structure if it doesn't exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        Path(self.storage_path).mkdir(parents=True, exist_ok=True)

    def to_library_config(self) -> dict[str, Any]:
        """Convert into the config dict accepted by ``BlogTransfer.from_config``."""
        if self.database_url:
            store_config: dict[str, Any] = {"url": self.database_url}
        elif self.store_provider == "sqlite":
            store_config = {"path": self.sqlite_path}
        else:
            store_config = {}

        return {
            "storage": {"provider": "disk", "config": {"base_path": self.storage_path}},
            "store": {"provider": self.store_provider, "config": store_config},
            "status": {"provider": "memory", "config": {}},
            "workflow": dict(self.workflow or {}),
        }


def load_config() -> Config:
    """Load config from disk, falling back to defaults + env overrides."""
    path = _config_path()
    cfg = Config()

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)
        store_section = data.get("store", {})
        data_section = data.get("data", {})

        cfg.store_provider = store_section.get("provider", cfg.store_provider)
        cfg.database_url = store_section.get("url", cfg.database_url)
        cfg.data_dir = data_section.get("dir", cfg.data_dir)
        cfg.workflow = data.get("workflow") or None

    # Environment variables always take precedence
    cfg.store_provider = os.environ.get("BLOG_TRANSFER_STORE", cfg.store_provider)
    cfg.database_url = os.environ.get("BLOG_TRANSFER_DATABASE_URL", cfg.database_url)
    cfg.data_dir = os.environ.get("BLOG_TRANSFER_DATA_DIR", cfg.data_dir)

    return cfg


def config_exists() -> bool:
    return _config_path().exists()


def config_path_display() -> str:
    return str(_config_path())
