"""Minion worker: runs conversion tasks concurrently on a thread pool.

Startup (`start()`) configures logging and the process-wide TLS context
exactly once, then builds one executor per registered task type. Each
submitted task runs on its own pool thread with its own scratch
directory; the only state shared between runs is the TLS context
(read-only) and the cancellation registry (lock-guarded).

Usage:
    worker = MinionWorker(get_settings(), {"MergeRollupTask": MergeRollupConverter()})
    worker.start()
    future = worker.submit("MergeRollupTask", configs)
    results = future.result()
"""

import logging
import threading
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Mapping, Optional

from minion.core.config import Settings
from minion.core.logging import configure_structlog
from minion.fetcher import FetcherRegistry, build_default_registry
from minion.pipeline import (
    CancellationRegistry,
    ConversionResult,
    ConversionTaskExecutor,
    SegmentConverter,
    TaskConfigError,
    TaskDescriptor,
)
from minion.pipeline.executor import EventCallback, UploadClientFactory
from minion.transport import init_transport

logger = logging.getLogger(__name__)


class MinionWorker:
    def __init__(
        self,
        settings: Settings,
        converters: Mapping[str, SegmentConverter],
        fetchers: Optional[FetcherRegistry] = None,
        upload_client_factory: Optional[UploadClientFactory] = None,
        configure_logging: bool = True,
    ):
        self._settings = settings
        self._converters = dict(converters)
        self._fetchers = fetchers
        self._upload_client_factory = upload_client_factory
        self._configure_logging = configure_logging
        self._cancellation = CancellationRegistry()
        self._active_lock = threading.Lock()
        self._active: Counter[str] = Counter()
        self._executors: dict[str, ConversionTaskExecutor] = {}
        self._pool: Optional[ThreadPoolExecutor] = None

    @property
    def cancellation(self) -> CancellationRegistry:
        return self._cancellation

    def start(self) -> None:
        """One-time startup. Must run before the first `submit()`."""
        if self._pool is not None:
            return

        if self._configure_logging:
            configure_structlog(debug=self._settings.debug)

        ssl_context = init_transport(self._settings)
        fetchers = self._fetchers or build_default_registry(
            ssl_context=ssl_context,
            timeout=self._settings.fetch_timeout_seconds,
        )

        extra = {}
        if self._upload_client_factory is not None:
            extra["upload_client_factory"] = self._upload_client_factory

        for task_type, converter in self._converters.items():
            self._executors[task_type] = ConversionTaskExecutor(
                converter,
                data_dir=self._settings.data_dir,
                fetchers=fetchers,
                cancellation=self._cancellation,
                upload_timeout_ms=self._settings.upload_socket_timeout_ms,
                **extra,
            )

        self._pool = ThreadPoolExecutor(
            max_workers=self._settings.max_workers,
            thread_name_prefix="minion-task",
        )
        logger.info(
            "Minion worker started: task_types=%s max_workers=%d data_dir=%s",
            sorted(self._executors), self._settings.max_workers, self._settings.data_dir,
        )

    def submit(
        self,
        task_type: str,
        configs: Mapping[str, str],
        on_event: Optional[EventCallback] = None,
    ) -> "Future[list[ConversionResult]]":
        """Parse a task and schedule its run.

        Config errors are raised here, synchronously, rather than through
        the returned future.

        Raises:
            RuntimeError: If the worker has not been started.
            TaskConfigError: If the task type is unknown or the config is invalid.
        """
        if self._pool is None:
            raise RuntimeError("MinionWorker.start() must be called before submit()")

        executor = self._executors.get(task_type)
        if executor is None:
            valid = ", ".join(sorted(self._executors)) or "(none)"
            raise TaskConfigError(f"Unknown task type '{task_type}'. Registered: {valid}")

        task = TaskDescriptor.from_configs(task_type, configs)
        logger.info("Submitting task %s", task.task_id)
        with self._active_lock:
            self._active[task.task_id] += 1
        try:
            return self._pool.submit(self._run, executor, task, on_event)
        except RuntimeError:
            self._release(task.task_id)
            raise

    def cancel(self, task_id: str) -> bool:
        """Request cancellation; honoured if the run has not started uploading.

        Returns False, and records nothing, when no submitted run with that
        id is pending or running.
        """
        with self._active_lock:
            if not self._active[task_id]:
                logger.info("Ignoring cancel for unknown or finished task %s", task_id)
                return False
            self._cancellation.cancel(task_id)
        return True

    def shutdown(self, wait: bool = True) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            self._pool = None
            logger.info("Minion worker stopped")

    def _run(
        self,
        executor: ConversionTaskExecutor,
        task: TaskDescriptor,
        on_event: Optional[EventCallback],
    ) -> list[ConversionResult]:
        try:
            return executor.execute(task, on_event=on_event)
        finally:
            self._release(task.task_id)

    def _release(self, task_id: str) -> None:
        with self._active_lock:
            self._active[task_id] -= 1
            if self._active[task_id] <= 0:
                del self._active[task_id]
                self._cancellation.clear(task_id)
