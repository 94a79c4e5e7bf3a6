from blog_transfer.facade.core import BlogTransfer
from blog_transfer.facade.types import ExportStarted, ImportStarted, UploadedFile

__all__ = [
    "BlogTransfer",
    "ExportStarted",
    "ImportStarted",
    "UploadedFile",
]
