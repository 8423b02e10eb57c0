"""Tests for the tar.gz segment codec."""

import io
import tarfile

import pytest

from minion.archive import ArchiveError, TarGzCodec

from conftest import make_truncated_segment_archive


@pytest.fixture
def codec() -> TarGzCodec:
    return TarGzCodec()


class TestCreateTarGz:
    def test_archive_root_is_source_dir_name(self, tmp_path, codec) -> None:
        source = tmp_path / "events_0"
        source.mkdir()
        (source / "columns.psf").write_text("x")
        (tmp_path / "out").mkdir()

        archive = codec.create_tar_gz(source, tmp_path / "out" / "merged_0")

        assert archive.name == "merged_0.tar.gz"
        with tarfile.open(archive) as tar:
            names = tar.getnames()
        assert "events_0" in names
        assert "events_0/columns.psf" in names

    def test_missing_source_raises(self, tmp_path, codec) -> None:
        with pytest.raises(ArchiveError):
            codec.create_tar_gz(tmp_path / "nope", tmp_path / "out")

    def test_missing_destination_dir_raises(self, tmp_path, codec) -> None:
        source = tmp_path / "seg"
        source.mkdir()
        with pytest.raises(ArchiveError):
            codec.create_tar_gz(source, tmp_path / "no" / "such" / "dir" / "seg")


class TestUntar:
    def test_pack_then_unpack_restores_single_entry(self, tmp_path, codec) -> None:
        source = tmp_path / "events_0"
        source.mkdir()
        (source / "metadata.properties").write_text("a=b")
        archive = codec.create_tar_gz(source, tmp_path / "events_0")

        dest = tmp_path / "unpacked"
        codec.untar(archive, dest)

        assert [p.name for p in dest.iterdir()] == ["events_0"]
        assert (dest / "events_0" / "metadata.properties").read_text() == "a=b"

    def test_garbage_file_raises(self, tmp_path, codec) -> None:
        bogus = tmp_path / "bogus"
        bogus.write_bytes(b"not a tarball")
        with pytest.raises(ArchiveError):
            codec.untar(bogus, tmp_path / "dest")

    def test_truncated_gzip_stream_raises(self, tmp_path, codec) -> None:
        archive = make_truncated_segment_archive(tmp_path / "in", "events_0")
        with pytest.raises(ArchiveError):
            codec.untar(archive, tmp_path / "dest")

    def test_path_traversal_member_is_rejected(self, tmp_path, codec) -> None:
        archive = tmp_path / "evil.tar.gz"
        payload = b"owned"
        with tarfile.open(archive, "w:gz") as tar:
            info = tarfile.TarInfo("../escaped.txt")
            info.size = len(payload)
            tar.addfile(info, io.BytesIO(payload))

        with pytest.raises(ArchiveError):
            codec.untar(archive, tmp_path / "dest")
        assert not (tmp_path / "escaped.txt").exists()
