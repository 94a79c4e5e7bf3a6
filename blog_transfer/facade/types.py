"""Public argument and return types for the blog_transfer API."""

from __future__ import annotations

from dataclasses import dataclass

from blog_transfer.models import ImportMode


@dataclass(frozen=True)
class UploadedFile:
    """One file handed to :meth:`BlogTransfer.start_import`."""

    name: str
    data: bytes


@dataclass
class ExportStarted:
    """Result from :meth:`BlogTransfer.start_export`."""

    task_id: str


@dataclass
class ImportStarted:
    """Result from :meth:`BlogTransfer.start_import`."""

    task_id: str
    mode: ImportMode
