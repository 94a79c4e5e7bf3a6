"""Progress, report and manifest records exchanged with callers."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

EXPORT_MANIFEST_VERSION = "1.0"
EXPORT_GENERATOR = "blog-transfer"


class TaskStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class ImportMode(StrEnum):
    NATIVE = "native"
    MARKDOWN = "markdown"


class TaskError(BaseModel):
    post: str
    reason: str


class SucceededEntry(BaseModel):
    title: str
    slug: str


class FailedEntry(BaseModel):
    title: str
    reason: str


class ImportReport(BaseModel):
    succeeded: list[SucceededEntry] = Field(default_factory=list)
    failed: list[FailedEntry] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def extend(self, delta: ImportReport) -> None:
        self.succeeded.extend(delta.succeeded)
        self.failed.extend(delta.failed)
        self.warnings.extend(delta.warnings)

    def summary(self) -> str:
        return (
            f"{len(self.succeeded)} succeeded, {len(self.failed)} failed, "
            f"{len(self.warnings)} warnings"
        )


class TaskProgress(BaseModel):
    """Progress record polled by callers while a task runs."""

    model_config = ConfigDict(populate_by_name=True)

    status: TaskStatus
    total: int = 0
    completed: int = 0
    current: str = ""
    errors: list[TaskError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    download_key: str | None = Field(default=None, alias="downloadKey")
    report: ImportReport | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ExportManifest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str
    exported_at: str = Field(alias="exportedAt")
    post_count: int = Field(alias="postCount")
    generator: str


class TagListing(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    created_at: str = Field(alias="createdAt")


class PostEntry(BaseModel):
    """A post discovered in an archive before it is fully parsed.

    ``prefix`` is the archive directory holding the post's files;
    ``md_path`` is set only for plain-markdown archives.
    """

    model_config = ConfigDict(populate_by_name=True)

    dir: str
    title: str
    prefix: str
    md_path: str | None = Field(default=None, alias="mdPath")

    @property
    def label(self) -> str:
        return self.title or self.dir


def export_progress_key(task_id: str) -> str:
    return f"export:progress:{task_id}"


def import_progress_key(task_id: str) -> str:
    return f"import:progress:{task_id}"


def cancel_key(task_id: str) -> str:
    return f"task:cancel:{task_id}"


def export_archive_key(task_id: str) -> str:
    return f"exports/{task_id}.zip"


def import_archive_key(task_id: str) -> str:
    return f"imports/{task_id}.zip"
