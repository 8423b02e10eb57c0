"""Scratch workspace lifecycle for a task run.

Every task run gets its own directory under
``<data_dir>/<task_type>/tmp-<time_ns>-<random>``. The nanosecond
timestamp alone can collide when two runs start on the same tick, so a
random suffix is appended and creation uses ``exist_ok=False``: a
collision is an allocation error, never a shared directory.

Teardown is best-effort. A failed delete is logged and left for the
operator; it must not replace the run's real outcome.
"""

import logging
import shutil
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from minion.pipeline.errors import ResourceAllocationError

logger = logging.getLogger(__name__)


def open_workspace(data_dir: Path, task_type: str) -> Path:
    """Create a fresh, uniquely named scratch directory.

    Raises:
        ResourceAllocationError: If the directory cannot be created.
    """
    parent = Path(data_dir) / task_type
    name = f"tmp-{time.time_ns()}-{uuid.uuid4().hex[:8]}"
    scratch_dir = parent / name

    try:
        parent.mkdir(parents=True, exist_ok=True)
        scratch_dir.mkdir(exist_ok=False)
    except OSError as exc:
        raise ResourceAllocationError(
            f"Cannot create scratch directory {scratch_dir}: {exc}"
        ) from exc

    logger.debug("Opened scratch directory %s", scratch_dir)
    return scratch_dir


def close_workspace(scratch_dir: Path) -> None:
    """Delete the scratch directory tree. Never raises."""
    if not scratch_dir.exists():
        return

    def _log_failure(func, path, exc) -> None:
        logger.warning("Failed to delete %s during teardown: %s", path, exc)

    shutil.rmtree(scratch_dir, onexc=_log_failure)
    logger.debug("Closed scratch directory %s", scratch_dir)


@contextmanager
def scratch_workspace(data_dir: Path, task_type: str) -> Iterator[Path]:
    """Open a scratch directory and delete it on every exit path."""
    scratch_dir = open_workspace(data_dir, task_type)
    try:
        yield scratch_dir
    finally:
        close_workspace(scratch_dir)
