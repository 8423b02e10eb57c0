"""tar.gz codec for segment archives.

Segment archives hold a single top-level directory (the segment index
dir). `create_tar_gz()` produces that layout from a directory and
`untar()` restores it.

Security:
  - Extraction uses tarfile's "data" filter, which rejects absolute paths,
    `..` components, links escaping the destination and device files.
"""

import logging
import tarfile
import zlib
from pathlib import Path

logger = logging.getLogger(__name__)

TAR_GZ_EXTENSION = ".tar.gz"


class ArchiveError(Exception):
    """Raised when an archive cannot be read or written."""


class TarGzCodec:
    def untar(self, archive_path: Path, dest_dir: Path) -> None:
        """Extract `archive_path` into `dest_dir`, creating it if needed."""
        dest_dir.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(archive_path, "r:*") as tar:
                tar.extractall(dest_dir, filter="data")
        except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
            raise ArchiveError(f"Cannot extract {archive_path}: {exc}") from exc

        logger.debug("Extracted %s into %s", archive_path, dest_dir)

    def create_tar_gz(self, source_dir: Path, dest_path: Path) -> Path:
        """Archive `source_dir` as `<dest_path>.tar.gz`.

        The archive root is the source directory's own name, so untarring
        yields exactly one top-level entry.

        Returns:
            Path of the written archive.
        """
        if not source_dir.is_dir():
            raise ArchiveError(f"Not a directory: {source_dir}")

        archive_path = dest_path.with_name(dest_path.name + TAR_GZ_EXTENSION)
        try:
            with tarfile.open(archive_path, "w:gz") as tar:
                tar.add(source_dir, arcname=source_dir.name)
        except (tarfile.TarError, OSError) as exc:
            raise ArchiveError(f"Cannot create {archive_path}: {exc}") from exc

        logger.debug("Archived %s into %s", source_dir, archive_path)
        return archive_path
