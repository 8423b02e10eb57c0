"""Error taxonomy for a conversion task run.

Every error here is fatal to the task run and reaches the caller of
`ConversionTaskExecutor.execute()` unchanged. Transient upload failures
never appear here unless the retry budget is spent.
"""

from typing import Optional


class TaskExecutionError(Exception):
    """Base class for all task run failures."""


class TaskConfigError(TaskExecutionError, ValueError):
    """Raised when a task config is missing keys or has unparseable values."""


class ResourceAllocationError(TaskExecutionError):
    """Raised when the scratch directory cannot be created."""


class FetchError(TaskExecutionError):
    """Raised when an input segment cannot be downloaded."""


class MalformedArtifactError(TaskExecutionError):
    """Raised when an input archive does not unpack to exactly one entry."""


class ConversionError(TaskExecutionError):
    """Raised when the task-specific converter fails."""


class PackagingError(TaskExecutionError):
    """Raised when a converted segment cannot be archived."""


class TaskCancelledError(TaskExecutionError):
    """Raised when the task was cancelled before uploading."""


class PublishPermanentError(TaskExecutionError):
    """Raised when the destination rejects an upload with a non-retryable status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PublishRetryExhaustedError(TaskExecutionError):
    """Raised when every upload attempt failed with a retryable error."""

    def __init__(self, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(message)
