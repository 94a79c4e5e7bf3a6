from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from blog_transfer.models.utils import generate_id, utcnow


class WorkflowKind(StrEnum):
    EXPORT = "export"
    IMPORT = "import"


class WorkflowRunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class WorkflowRun:
    """One export or import task and the parameters it was started with.

    ``params`` is plain JSON so a run can be relaunched in a fresh
    process; completed steps then replay from the checkpoint log.
    """

    kind: WorkflowKind
    params: dict[str, Any]
    id: str = field(default_factory=generate_id)
    status: WorkflowRunStatus = WorkflowRunStatus.RUNNING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Checkpoint:
    """Recorded outcome of one workflow step.

    Exactly one of ``result`` / ``error`` is meaningful: ``error`` is
    set when the step exhausted its retries.
    """

    task_id: str
    seq: int
    name: str
    result: Any = None
    error: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def failed(self) -> bool:
        return self.error is not None
