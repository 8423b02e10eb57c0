"""Shared fixtures and fakes for the minion test suite.

No test touches the network: uploads go through `FakeUploadClient`, and
input segments are real tar.gz files served by the local fetcher.
"""

import os
import tarfile
from pathlib import Path
from typing import Optional

import pytest

from minion.pipeline import ConversionResult, SegmentConverter, TaskDescriptor
from minion.transport import UploadResponse


# ---------------------------------------------------------------------------
# Segment archives
# ---------------------------------------------------------------------------

def make_segment_archive(
    root: Path,
    segment_name: str,
    files: Optional[dict[str, str]] = None,
) -> Path:
    """Write `<root>/<segment_name>.tar.gz` holding one segment directory."""
    src = root / "src" / segment_name
    src.mkdir(parents=True)
    for rel_path, content in (files or {"metadata.properties": "segment.name=" + segment_name}).items():
        (src / rel_path).write_text(content, encoding="utf-8")

    archive = root / f"{segment_name}.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        tar.add(src, arcname=segment_name)
    return archive


def make_truncated_segment_archive(root: Path, segment_name: str) -> Path:
    """Write a segment archive, then cut it in half mid gzip stream."""
    archive = make_segment_archive(
        root, segment_name, {"columns.psf": os.urandom(200_000).hex()},
    )
    data = archive.read_bytes()
    archive.write_bytes(data[: len(data) // 2])
    return archive


def make_task_configs(download_urls: list[str], **overrides: str) -> dict[str, str]:
    configs = {
        "tableName": "events_OFFLINE",
        "segmentName": "events_0",
        "downloadURL": ",".join(download_urls),
        "uploadURL": "http://controller:9000/segments",
        "originalSegmentCrc": "123456789",
        "initialRetryDelayMs": "100",
    }
    configs.update(overrides)
    return configs


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeUploadClient:
    """Stand-in for SegmentUploadClient.

    `outcomes` is consumed one item per upload call: an Exception is
    raised, anything else counts as success. Once exhausted, every call
    succeeds.
    """

    def __init__(self, outcomes: Optional[list] = None):
        self.outcomes = list(outcomes or [])
        self.calls: list[dict] = []
        self.closed = False

    def __enter__(self) -> "FakeUploadClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.closed = True

    def upload_segment(self, upload_url, segment_name, archive_path, headers=None,
                       params=None, timeout_ms=0) -> UploadResponse:
        self.calls.append({
            "upload_url": upload_url,
            "segment_name": segment_name,
            "archive_path": Path(archive_path),
            "archive_exists": Path(archive_path).is_file(),
            "headers": dict(headers or {}),
            "params": dict(params or {}),
            "timeout_ms": timeout_ms,
        })
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
        return UploadResponse(status_code=200, body='{"status": "ok"}')


class CopyConverter(SegmentConverter):
    """Emits one converted segment per input, named `<input>_converted`."""

    def __init__(self) -> None:
        self.calls: list[list[Path]] = []

    def convert(self, task: TaskDescriptor, input_dirs: list[Path], working_dir: Path) -> list[ConversionResult]:
        self.calls.append(list(input_dirs))
        results = []
        for input_dir in input_dirs:
            out = working_dir / f"{input_dir.name}_converted"
            out.mkdir()
            for f in input_dir.iterdir():
                (out / f.name).write_bytes(f.read_bytes())
            results.append(ConversionResult(file=out, segment_name=out.name))
        return results


@pytest.fixture
def segment_archive(tmp_path: Path) -> Path:
    return make_segment_archive(tmp_path / "inputs", "events_0")
