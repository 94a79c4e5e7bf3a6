from blog_transfer.store.base import Store
from blog_transfer.store.memory import InMemoryStore
from blog_transfer.store.sql import SqlStore, postgres_url, sqlite_url

__all__ = [
    "InMemoryStore",
    "SqlStore",
    "Store",
    "postgres_url",
    "sqlite_url",
]
