"""Per-task cancellation flags shared by the worker process.

An external controller calls `cancel(task_id)`; the task run reads the
flag once, right before its first upload. Reads and writes go through a
lock so a flag set from a controller thread is visible to the task thread.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class CancellationRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled: set[str] = set()

    def cancel(self, task_id: str) -> None:
        with self._lock:
            self._cancelled.add(task_id)
        logger.info("Cancellation requested for task %s", task_id)

    def is_cancelled(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._cancelled

    def clear(self, task_id: str) -> None:
        with self._lock:
            self._cancelled.discard(task_id)
