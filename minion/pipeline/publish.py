"""Publish stage: cancellation gate plus retried segment uploads.

Cancellation is checked once, before the first upload. A cancel request
that arrives after the check does not interrupt uploads already underway.

Every upload carries:
  - If-Match: the original segment CRC, so the controller rejects the
    upload if the source segment was refreshed while the task ran.
  - X-Segment-Metadata-Update: JSON directive for segment metadata. Sent
    even when the segment is unchanged, so the controller marks the task
    done and does not schedule it again.
  - enableParallelPushProtection=true: the controller serialises
    concurrent uploads of the same segment name.

Failure classification per attempt:
  409 Conflict, 5xx               → retryable (next attempt)
  any other non-2xx status        → permanent (abort immediately)
  httpx request errors, OSError   → retryable
"""

import logging
import time
from http import HTTPStatus
from typing import Callable

import httpx

from minion.pipeline.cancellation import CancellationRegistry
from minion.pipeline.errors import (
    PublishPermanentError,
    PublishRetryExhaustedError,
    TaskCancelledError,
)
from minion.pipeline.types import MetadataUpdate, PackagedArtifact, TaskDescriptor
from minion.retry import RetriesExhaustedError, RetryPolicy
from minion.transport import SegmentUploadClient, UploadStatusError
from minion.transport.uploader import DEFAULT_SOCKET_TIMEOUT_MS

logger = logging.getLogger(__name__)

IF_MATCH_HEADER = "If-Match"
METADATA_UPDATE_HEADER = "X-Segment-Metadata-Update"
PARALLEL_PUSH_PROTECTION_PARAM = "enableParallelPushProtection"


def check_cancellation(task: TaskDescriptor, cancellation: CancellationRegistry) -> None:
    """Raise TaskCancelledError if the task has been cancelled."""
    if cancellation.is_cancelled(task.task_id):
        logger.info(
            "%s on table: %s, segment: %s got cancelled",
            task.task_type, task.table_name, task.segment_name,
        )
        raise TaskCancelledError(
            f"{task.task_type} on table: {task.table_name}, "
            f"segment: {task.segment_name} got cancelled"
        )


def is_retryable_status(status_code: int) -> bool:
    return status_code == HTTPStatus.CONFLICT or status_code >= 500


def build_upload_headers(task: TaskDescriptor, metadata_update: MetadataUpdate) -> dict[str, str]:
    return {
        IF_MATCH_HEADER: task.original_segment_crc,
        METADATA_UPDATE_HEADER: metadata_update.to_json(),
    }


def publish_artifacts(
    task: TaskDescriptor,
    artifacts: list[PackagedArtifact],
    client: SegmentUploadClient,
    policy: RetryPolicy,
    metadata_update: MetadataUpdate,
    timeout_ms: int = DEFAULT_SOCKET_TIMEOUT_MS,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Upload each artifact in order, one at a time.

    Raises:
        PublishPermanentError: On a non-retryable upload status.
        PublishRetryExhaustedError: If an artifact used up its attempt budget.
    """
    params = {PARALLEL_PUSH_PROTECTION_PARAM: "true"}

    for artifact in artifacts:
        headers = build_upload_headers(task, _artifact_metadata(metadata_update, artifact))
        _publish_one(task, artifact, client, policy, headers, params, timeout_ms, sleep)


def _artifact_metadata(metadata_update: MetadataUpdate, artifact: PackagedArtifact) -> MetadataUpdate:
    # Per-segment entries from the converter override the task-wide ones.
    if artifact.result is None or not artifact.result.custom_map:
        return metadata_update
    return MetadataUpdate(
        modify_mode=metadata_update.modify_mode,
        custom_map={**metadata_update.custom_map, **artifact.result.custom_map},
    )


def _publish_one(
    task: TaskDescriptor,
    artifact: PackagedArtifact,
    client: SegmentUploadClient,
    policy: RetryPolicy,
    headers: dict[str, str],
    params: dict[str, str],
    timeout_ms: int,
    sleep: Callable[[float], None],
) -> None:
    segment_name = artifact.segment_name
    last_error: list[Exception] = []

    def _attempt() -> bool:
        try:
            response = client.upload_segment(
                task.upload_url,
                segment_name,
                artifact.archive_path,
                headers=headers,
                params=params,
                timeout_ms=timeout_ms,
            )
        except UploadStatusError as exc:
            if is_retryable_status(exc.status_code):
                logger.warning(
                    "Caught temporary exception while uploading segment: %s, will retry",
                    segment_name, exc_info=True,
                )
                last_error[:] = [exc]
                return False
            logger.error(
                "Caught permanent exception while uploading segment: %s, won't retry",
                segment_name, exc_info=True,
            )
            raise PublishPermanentError(
                f"Upload of segment {segment_name} to {task.upload_url} rejected "
                f"with status {exc.status_code}: {exc.body}",
                status_code=exc.status_code,
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            logger.warning(
                "Caught temporary exception while uploading segment: %s, will retry",
                segment_name, exc_info=True,
            )
            last_error[:] = [exc]
            return False

        logger.info(
            "Got response %d: %s while uploading table: %s, segment: %s with uploadURL: %s",
            response.status_code, response.body, task.table_name, segment_name, task.upload_url,
        )
        return True

    try:
        policy.attempt(_attempt, sleep=sleep)
    except RetriesExhaustedError as exc:
        cause = last_error[0] if last_error else exc
        raise PublishRetryExhaustedError(
            f"Upload of segment {segment_name} to {task.upload_url} failed after "
            f"{exc.attempts} attempt(s): {cause}",
            attempts=exc.attempts,
        ) from cause
