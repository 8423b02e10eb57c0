"""Pipeline module for segment conversion task runs.

Public API:
    ConversionTaskExecutor(converter, ...).execute(task) -> list[ConversionResult]
    SegmentConverter: base class for task-type converters
    TaskDescriptor.from_configs(task_type, configs)
"""

from minion.pipeline.cancellation import CancellationRegistry
from minion.pipeline.conversion import SegmentConverter
from minion.pipeline.errors import (
    ConversionError,
    FetchError,
    MalformedArtifactError,
    PackagingError,
    PublishPermanentError,
    PublishRetryExhaustedError,
    ResourceAllocationError,
    TaskCancelledError,
    TaskConfigError,
    TaskExecutionError,
)
from minion.pipeline.executor import ConversionTaskExecutor
from minion.pipeline.types import (
    ConversionResult,
    MetadataUpdate,
    ModifyMode,
    PackagedArtifact,
    TaskDescriptor,
    TaskState,
)

__all__ = [
    "CancellationRegistry",
    "ConversionError",
    "ConversionResult",
    "ConversionTaskExecutor",
    "FetchError",
    "MalformedArtifactError",
    "MetadataUpdate",
    "ModifyMode",
    "PackagedArtifact",
    "PackagingError",
    "PublishPermanentError",
    "PublishRetryExhaustedError",
    "ResourceAllocationError",
    "SegmentConverter",
    "TaskCancelledError",
    "TaskConfigError",
    "TaskDescriptor",
    "TaskExecutionError",
    "TaskState",
]
