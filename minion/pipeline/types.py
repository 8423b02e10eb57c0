"""Types for the conversion task pipeline.

TaskDescriptor is the parsed, immutable form of the scheduler's flat
string config map. ConversionResult and PackagedArtifact flow between the
convert, package and publish stages; MetadataUpdate travels with every
upload so the controller can update segment bookkeeping.
"""

import json
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from minion.pipeline.errors import TaskConfigError
from minion.retry import RetryPolicy
from minion.retry.policy import (
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_SCALE_FACTOR,
)

# Task config keys, as sent by the scheduler
TASK_ID_KEY = "taskId"
TABLE_NAME_KEY = "tableName"
SEGMENT_NAME_KEY = "segmentName"
DOWNLOAD_URL_KEY = "downloadURL"
UPLOAD_URL_KEY = "uploadURL"
ORIGINAL_SEGMENT_CRC_KEY = "originalSegmentCrc"
MAX_NUM_ATTEMPTS_KEY = "maxNumAttempts"
INITIAL_RETRY_DELAY_MS_KEY = "initialRetryDelayMs"
RETRY_SCALE_FACTOR_KEY = "retryScaleFactor"

_REQUIRED_KEYS = (
    TABLE_NAME_KEY,
    SEGMENT_NAME_KEY,
    DOWNLOAD_URL_KEY,
    UPLOAD_URL_KEY,
    ORIGINAL_SEGMENT_CRC_KEY,
)


class TaskState(StrEnum):
    """Lifecycle of a single task run."""

    CREATED = "created"
    STAGING = "staging"
    CONVERTING = "converting"
    PACKAGING = "packaging"
    CANCELLATION_CHECK = "cancellation_check"
    PUBLISHING = "publishing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.COMPLETED, TaskState.FAILED, TaskState.CANCELLED)


class ModifyMode(StrEnum):
    """How the controller applies a custom map to segment metadata."""

    REPLACE = "REPLACE"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class TaskDescriptor:
    """One conversion task as assigned by the scheduler."""

    task_type: str
    table_name: str
    segment_name: str
    download_urls: tuple[str, ...]
    upload_url: str
    original_segment_crc: str
    configs: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_configs(cls, task_type: str, configs: Mapping[str, str]) -> "TaskDescriptor":
        """Parse the scheduler's flat config map.

        Raises:
            TaskConfigError: If a required key is missing or blank, or if
                the download URL list is empty.
        """
        if not task_type:
            raise TaskConfigError("Task type must not be empty")

        missing = [key for key in _REQUIRED_KEYS if not (configs.get(key) or "").strip()]
        if missing:
            raise TaskConfigError(
                f"{task_type} task config missing required keys: {', '.join(missing)}"
            )

        download_urls = tuple(
            url.strip() for url in configs[DOWNLOAD_URL_KEY].split(",") if url.strip()
        )
        if not download_urls:
            raise TaskConfigError(f"{task_type} task config has no download URLs")

        descriptor = cls(
            task_type=task_type,
            table_name=configs[TABLE_NAME_KEY].strip(),
            segment_name=configs[SEGMENT_NAME_KEY].strip(),
            download_urls=download_urls,
            upload_url=configs[UPLOAD_URL_KEY].strip(),
            original_segment_crc=configs[ORIGINAL_SEGMENT_CRC_KEY].strip(),
            configs=MappingProxyType(dict(configs)),
        )
        # Surface bad tuning values at parse time, not at upload time
        descriptor.retry_policy()
        return descriptor

    @property
    def task_id(self) -> str:
        explicit = self.configs.get(TASK_ID_KEY)
        if explicit:
            return explicit
        return f"{self.task_type}:{self.table_name}:{self.segment_name}"

    def retry_policy(self) -> RetryPolicy:
        """Build the upload retry policy from the optional tuning keys.

        Raises:
            TaskConfigError: If a tuning value is present but not a valid
                number, or is out of range.
        """
        max_attempts = _parse(self.configs, MAX_NUM_ATTEMPTS_KEY, int, DEFAULT_MAX_ATTEMPTS)
        initial_delay_ms = _parse(
            self.configs, INITIAL_RETRY_DELAY_MS_KEY, int, DEFAULT_INITIAL_DELAY_MS
        )
        scale_factor = _parse(self.configs, RETRY_SCALE_FACTOR_KEY, float, DEFAULT_SCALE_FACTOR)
        try:
            return RetryPolicy(
                max_attempts=max_attempts,
                initial_delay_ms=initial_delay_ms,
                scale_factor=scale_factor,
            )
        except ValueError as exc:
            raise TaskConfigError(f"Invalid retry config for {self.task_id}: {exc}") from exc


def _parse(configs: Mapping[str, str], key: str, cast: type, default):
    raw = configs.get(key)
    if raw is None:
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise TaskConfigError(f"Invalid value for '{key}': {raw!r}") from exc


@dataclass(frozen=True)
class MetadataUpdate:
    """Directive telling the controller how to modify segment metadata.

    Sent with every upload, even when the segment bytes did not change, so
    the controller records that the task ran and does not schedule it again.
    """

    modify_mode: ModifyMode = ModifyMode.UPDATE
    custom_map: Mapping[str, str] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(
            {"modifyMode": self.modify_mode.value, "customMap": dict(self.custom_map)},
            sort_keys=True,
        )


@dataclass
class ConversionResult:
    """One converted segment directory produced by a converter."""

    file: Path
    segment_name: str
    custom_map: dict[str, str] = field(default_factory=dict)


@dataclass
class PackagedArtifact:
    """A converted segment archived and ready for upload."""

    segment_name: str
    archive_path: Path
    result: Optional[ConversionResult] = None
