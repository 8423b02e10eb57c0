"""Input staging: download and untar every input segment.

For the input at position i the scratch layout is:
    tarredSegmentFile_<i>   downloaded archive
    segmentDir_<i>/<name>   unpacked segment; <name> is the staged input

The archive must unpack to exactly one top-level entry. Anything else
means the source is not a segment archive and the task cannot proceed.
"""

import logging
from pathlib import Path
from typing import Sequence

from minion.archive import ArchiveError, TarGzCodec
from minion.fetcher import FetcherRegistry
from minion.pipeline.errors import FetchError, MalformedArtifactError

logger = logging.getLogger(__name__)


def stage_inputs(
    download_urls: Sequence[str],
    scratch_dir: Path,
    fetchers: FetcherRegistry,
    codec: TarGzCodec,
) -> list[Path]:
    """Fetch and unpack each input segment, in order.

    Returns:
        One staged input directory per URL, positionally aligned.

    Raises:
        FetchError: If a segment cannot be downloaded.
        MalformedArtifactError: If an archive cannot be extracted or does
            not contain exactly one top-level entry.
    """
    staged: list[Path] = []

    for index, url in enumerate(download_urls):
        tarred_file = scratch_dir / f"tarredSegmentFile_{index}"
        try:
            fetchers.get(url).fetch(url, tarred_file)
        except Exception as exc:
            raise FetchError(
                f"Failed to fetch input {index} from {url}: {exc}"
            ) from exc

        segment_dir = scratch_dir / f"segmentDir_{index}"
        try:
            codec.untar(tarred_file, segment_dir)
        except ArchiveError as exc:
            raise MalformedArtifactError(
                f"Input {index} from {url} is not a valid archive: {exc}"
            ) from exc

        entries = sorted(segment_dir.iterdir())
        if len(entries) != 1:
            raise MalformedArtifactError(
                f"Input {index} from {url} must unpack to exactly one top-level "
                f"entry, found {len(entries)}"
            )

        staged.append(entries[0])
        logger.info("Staged input %d: %s", index, entries[0].name)

    return staged
