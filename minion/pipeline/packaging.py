"""Repackage converted segments as tar.gz archives for upload."""

import logging
from pathlib import Path

from minion.archive import ArchiveError, TarGzCodec
from minion.pipeline.errors import PackagingError
from minion.pipeline.types import ConversionResult, PackagedArtifact

logger = logging.getLogger(__name__)

CONVERTED_TARRED_DIR_NAME = "convertedTarredSegmentDir"


def _check_segment_name(name: str) -> None:
    """Archives are written as `<name>.tar.gz` directly under the tarred dir."""
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise PackagingError(f"Invalid converted segment name: {name!r}")


def package_results(
    results: list[ConversionResult],
    scratch_dir: Path,
    codec: TarGzCodec,
) -> list[PackagedArtifact]:
    """Archive each converted segment as `<segment_name>.tar.gz`.

    Returns:
        One artifact per result, positionally aligned.

    Raises:
        PackagingError: If a segment name is not a plain file name, two results
            share a segment name, or archiving fails.
    """
    for result in results:
        _check_segment_name(result.segment_name)

    names = [r.segment_name for r in results]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise PackagingError(f"Duplicate converted segment names: {', '.join(duplicates)}")

    tarred_dir = scratch_dir / CONVERTED_TARRED_DIR_NAME
    try:
        tarred_dir.mkdir(exist_ok=True)
    except OSError as exc:
        raise PackagingError(f"Cannot create {tarred_dir}: {exc}") from exc

    artifacts: list[PackagedArtifact] = []
    for result in results:
        try:
            archive_path = codec.create_tar_gz(result.file, tarred_dir / result.segment_name)
        except ArchiveError as exc:
            raise PackagingError(
                f"Failed to package converted segment {result.segment_name}: {exc}"
            ) from exc

        artifacts.append(PackagedArtifact(
            segment_name=result.segment_name,
            archive_path=archive_path,
            result=result,
        ))

    logger.info("Packaged %d converted segment(s)", len(artifacts))
    return artifacts
