from blog_transfer.status.base import StatusStore
from blog_transfer.status.memory import InMemoryStatusStore

__all__ = [
    "InMemoryStatusStore",
    "StatusStore",
]
