from blog_transfer.storage.base import StorageBackend
from blog_transfer.storage.disk import DiskStorage
from blog_transfer.storage.memory import MemoryStorage

__all__ = [
    "StorageBackend",
    "DiskStorage",
    "MemoryStorage",
]
