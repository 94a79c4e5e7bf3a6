from blog_transfer.core.exceptions import (
    ArchiveError,
    ArchiveNotFoundError,
    EntryImportError,
    ReplayMismatchError,
    SlugConflictError,
    StepFailedError,
    StepResultError,
    TaskCancelledError,
    TaskNotFoundError,
)

__all__ = [
    "ArchiveError",
    "ArchiveNotFoundError",
    "EntryImportError",
    "ReplayMismatchError",
    "SlugConflictError",
    "StepFailedError",
    "StepResultError",
    "TaskCancelledError",
    "TaskNotFoundError",
]
