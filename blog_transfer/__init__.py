from blog_transfer.config import WorkflowSettings
from blog_transfer.facade import BlogTransfer, ExportStarted, ImportStarted, UploadedFile
from blog_transfer.models import (
    ImportMode,
    ImportReport,
    PostStatus,
    TaskProgress,
    TaskStatus,
)

__all__ = [
    "BlogTransfer",
    "ExportStarted",
    "ImportMode",
    "ImportReport",
    "ImportStarted",
    "PostStatus",
    "TaskProgress",
    "TaskStatus",
    "UploadedFile",
    "WorkflowSettings",
]
