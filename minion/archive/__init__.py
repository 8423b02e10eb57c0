"""Archive module for segment tar.gz packing and unpacking."""

from minion.archive.tar_codec import TAR_GZ_EXTENSION, ArchiveError, TarGzCodec

__all__ = ["ArchiveError", "TarGzCodec", "TAR_GZ_EXTENSION"]
