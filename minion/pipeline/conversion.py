"""Conversion seam: hands staged inputs to the task type's converter.

Each task type (merge, rollup, purge, ...) ships a `SegmentConverter`.
The worker maps task types to converters and the executor calls
`invoke_conversion()`, which adds nothing to the converter's behaviour
beyond a dedicated working directory and error translation.

Conversion is not retried: converters are deterministic, so a second run
over the same inputs would fail the same way.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from minion.pipeline.errors import ConversionError, ResourceAllocationError
from minion.pipeline.types import ConversionResult, MetadataUpdate, TaskDescriptor

logger = logging.getLogger(__name__)

WORKING_DIR_NAME = "workingDir"


class SegmentConverter(ABC):
    """Task-type specific segment transform."""

    @abstractmethod
    def convert(
        self,
        task: TaskDescriptor,
        input_dirs: list[Path],
        working_dir: Path,
    ) -> list[ConversionResult]:
        """Convert the staged input segments.

        Args:
            task: The task being executed.
            input_dirs: Unpacked input segments, in download URL order.
            working_dir: Empty directory owned by this run; converted
                segments should be written beneath it.

        Returns:
            Zero or more converted segments to publish.
        """

    def metadata_update(self, task: TaskDescriptor) -> MetadataUpdate:
        """Directive sent with each upload. Defaults to an empty UPDATE."""
        return MetadataUpdate()


def invoke_conversion(
    converter: SegmentConverter,
    task: TaskDescriptor,
    input_dirs: list[Path],
    scratch_dir: Path,
) -> list[ConversionResult]:
    """Run `converter` in a fresh working directory under `scratch_dir`.

    Raises:
        ConversionError: If the converter raises or returns anything other
            than a list of ConversionResult.
    """
    working_dir = scratch_dir / WORKING_DIR_NAME
    try:
        working_dir.mkdir()
    except OSError as exc:
        raise ResourceAllocationError(f"Cannot create working directory {working_dir}: {exc}") from exc

    try:
        results = converter.convert(task, input_dirs, working_dir)
    except Exception as exc:
        raise ConversionError(
            f"{task.task_type} conversion failed for segment {task.segment_name}: {exc}"
        ) from exc

    if not isinstance(results, list) or not all(
        isinstance(r, ConversionResult) for r in results
    ):
        raise ConversionError(
            f"{type(converter).__name__} must return a list of ConversionResult, "
            f"got {type(results).__name__}"
        )

    logger.info(
        "%s produced %d converted segment(s) from %d input(s)",
        task.task_type, len(results), len(input_dirs),
    )
    return results
