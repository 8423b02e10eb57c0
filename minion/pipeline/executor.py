"""Conversion task executor: runs one task end to end.

Pipeline:
  1. open a private scratch directory
  2. stage_inputs()       : download + untar every input segment
  3. invoke_conversion()  : task type's converter writes converted segments
  4. package_results()    : tar.gz each converted segment
  5. check_cancellation() : single checkpoint before any upload
  6. publish_artifacts()  : upload each archive with retry
  7. delete the scratch directory, whatever happened above

Stages run strictly in sequence. Any stage error moves the run to FAILED
(or CANCELLED) and propagates to the caller unchanged.

One executor instance serves many concurrent runs: it holds only
immutable collaborators, and all per-run state lives on the stack of
`execute()`.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from minion.archive import TarGzCodec
from minion.core.logging import bind_task_id, unbind_task_id
from minion.fetcher import FetcherRegistry
from minion.pipeline.cancellation import CancellationRegistry
from minion.pipeline.conversion import SegmentConverter, invoke_conversion
from minion.pipeline.errors import TaskCancelledError
from minion.pipeline.packaging import package_results
from minion.pipeline.publish import check_cancellation, publish_artifacts
from minion.pipeline.staging import stage_inputs
from minion.pipeline.types import ConversionResult, TaskDescriptor, TaskState
from minion.pipeline.workspace import scratch_workspace
from minion.transport import SegmentUploadClient, get_ssl_context
from minion.transport.uploader import DEFAULT_SOCKET_TIMEOUT_MS

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, str, dict], None]
UploadClientFactory = Callable[[], SegmentUploadClient]


def _default_upload_client() -> SegmentUploadClient:
    return SegmentUploadClient(get_ssl_context())


class ConversionTaskExecutor:
    def __init__(
        self,
        converter: SegmentConverter,
        data_dir: Path,
        fetchers: FetcherRegistry,
        cancellation: CancellationRegistry,
        codec: Optional[TarGzCodec] = None,
        upload_client_factory: UploadClientFactory = _default_upload_client,
        upload_timeout_ms: int = DEFAULT_SOCKET_TIMEOUT_MS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._converter = converter
        self._data_dir = Path(data_dir)
        self._fetchers = fetchers
        self._cancellation = cancellation
        self._codec = codec or TarGzCodec()
        self._upload_client_factory = upload_client_factory
        self._upload_timeout_ms = upload_timeout_ms
        self._sleep = sleep

    def execute(
        self,
        task: TaskDescriptor,
        on_event: Optional[EventCallback] = None,
    ) -> list[ConversionResult]:
        """Run the full pipeline for `task`.

        Args:
            task: Parsed task descriptor.
            on_event: Optional callback invoked as
                on_event("task.state", state, data) on every state change.

        Returns:
            The converter's results, once every archive is uploaded.

        Raises:
            TaskExecutionError: The typed error of the failing stage.
        """
        def _transition(state: TaskState, **data) -> None:
            logger.debug("Task %s -> %s", task.task_id, state)
            if on_event:
                try:
                    on_event("task.state", state.value, {"task_id": task.task_id, **data})
                except Exception:
                    logger.debug("on_event callback failed for %s", state, exc_info=True)

        token = bind_task_id(task.task_id)
        try:
            _transition(TaskState.CREATED)
            logger.info(
                "Start executing %s on table: %s, segment: %s with downloadURL: %s, uploadURL: %s",
                task.task_type, task.table_name, task.segment_name,
                ",".join(task.download_urls), task.upload_url,
            )
            results = self._run(task, _transition)
        except TaskCancelledError:
            _transition(TaskState.CANCELLED)
            raise
        except Exception as exc:
            _transition(TaskState.FAILED, error=str(exc)[:500])
            logger.error(
                "Failed executing %s on table: %s, segment: %s: %s: %s",
                task.task_type, task.table_name, task.segment_name,
                type(exc).__name__, exc,
            )
            raise
        finally:
            unbind_task_id(token)

        return results

    def _run(
        self,
        task: TaskDescriptor,
        transition: Callable[..., None],
    ) -> list[ConversionResult]:
        policy = task.retry_policy()

        with scratch_workspace(self._data_dir, task.task_type) as scratch_dir:
            transition(TaskState.STAGING)
            input_dirs = stage_inputs(task.download_urls, scratch_dir, self._fetchers, self._codec)

            transition(TaskState.CONVERTING)
            results = invoke_conversion(self._converter, task, input_dirs, scratch_dir)

            transition(TaskState.PACKAGING)
            artifacts = package_results(results, scratch_dir, self._codec)

            transition(TaskState.CANCELLATION_CHECK)
            check_cancellation(task, self._cancellation)

            transition(TaskState.PUBLISHING, artifact_count=len(artifacts))
            with self._upload_client_factory() as client:
                publish_artifacts(
                    task,
                    artifacts,
                    client=client,
                    policy=policy,
                    metadata_update=self._converter.metadata_update(task),
                    timeout_ms=self._upload_timeout_ms,
                    sleep=self._sleep,
                )

        transition(TaskState.COMPLETED, result_count=len(results))
        logger.info(
            "Done executing %s on table: %s, segment: %s",
            task.task_type, task.table_name, task.segment_name,
        )
        return results
