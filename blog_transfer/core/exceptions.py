"""Custom exceptions for archive, import and workflow operations."""


class ArchiveError(Exception):
    """Raised when archive bytes cannot be read as a zip container."""

    def __init__(self, message: str | None = None):
        self.message = (
            f"Archive unreadable: {message}" if message else "Archive unreadable"
        )
        super().__init__(self.message)


class ArchiveNotFoundError(Exception):
    """Raised when the source archive is missing from blob storage."""

    def __init__(self, key: str):
        self.key = key
        self.message = f"Archive not found in storage: {key}"
        super().__init__(self.message)


class EntryImportError(Exception):
    """Raised when a single post entry cannot be imported."""

    pass


class SlugConflictError(Exception):
    """Raised when a post insert loses the race for a slug."""

    def __init__(self, slug: str):
        self.slug = slug
        self.message = f"Slug already exists: {slug}"
        super().__init__(self.message)


class StepFailedError(Exception):
    """Raised when a workflow step exhausts its retries.

    Also raised on replay when the checkpoint log recorded a failure for
    the step, so a failed task fails the same way after a restart.
    """

    def __init__(self, step_name: str, reason: str):
        self.step_name = step_name
        self.reason = reason
        self.message = f"Step '{step_name}' failed: {reason}"
        super().__init__(self.message)


class StepResultError(TypeError):
    """Raised when a step returns a value that cannot be checkpointed."""

    pass


class TaskCancelledError(Exception):
    """Raised inside a workflow when its cancel flag has been set."""

    pass


class TaskNotFoundError(KeyError):
    """Raised when a task id has no persisted workflow run."""

    pass


class ReplayMismatchError(RuntimeError):
    """Raised when a resumed task asks for steps in a different order
    than its checkpoint log recorded."""

    def __init__(self, seq: int, expected: str, actual: str):
        self.seq = seq
        self.expected = expected
        self.actual = actual
        self.message = (
            f"Checkpoint {seq} was recorded for step '{expected}', "
            f"but the workflow requested '{actual}'"
        )
        super().__init__(self.message)
