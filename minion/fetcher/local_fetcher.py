"""Local filesystem segment fetcher for ``file://`` URIs and bare paths."""

import logging
import shutil
from pathlib import Path
from urllib.parse import unquote, urlparse

logger = logging.getLogger(__name__)


class LocalSegmentFetcher:
    def fetch(self, uri: str, dest: Path) -> None:
        source = _to_path(uri)
        if not source.is_file():
            raise FileNotFoundError(f"Segment file not found: {source}")

        logger.info("Copying %s to %s", source, dest)
        shutil.copyfile(source, dest)


def _to_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)
