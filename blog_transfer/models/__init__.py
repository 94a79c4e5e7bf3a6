"""Domain models: plain dataclasses and pydantic records with no
infrastructure dependencies.

Dataclasses (``Post``, ``Tag``, ``Media``, ``WorkflowRun``,
``Checkpoint``) are the canonical types used by the ``Store`` protocol.
Pydantic models describe everything that crosses a serialization
boundary: front matter, archive JSON files, progress records.

The SQLAlchemy ORM models used by ``SqlStore`` live separately in
``store/orm.py`` and map to/from these domain models.
"""

from blog_transfer.models.metadata import PostFrontmatter
from blog_transfer.models.post import Media, Post, PostStatus, Tag
from blog_transfer.models.run import (
    Checkpoint,
    WorkflowKind,
    WorkflowRun,
    WorkflowRunStatus,
)
from blog_transfer.models.task import (
    EXPORT_GENERATOR,
    EXPORT_MANIFEST_VERSION,
    ExportManifest,
    FailedEntry,
    ImportMode,
    ImportReport,
    PostEntry,
    SucceededEntry,
    TagListing,
    TaskError,
    TaskProgress,
    TaskStatus,
)

__all__ = [
    "Checkpoint",
    "EXPORT_GENERATOR",
    "EXPORT_MANIFEST_VERSION",
    "ExportManifest",
    "FailedEntry",
    "ImportMode",
    "ImportReport",
    "Media",
    "Post",
    "PostEntry",
    "PostFrontmatter",
    "PostStatus",
    "SucceededEntry",
    "Tag",
    "TagListing",
    "TaskError",
    "TaskProgress",
    "TaskStatus",
    "WorkflowKind",
    "WorkflowRun",
    "WorkflowRunStatus",
]
