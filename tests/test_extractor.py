"""Extractor: format inference, external command lines, builtin and external extraction."""

import shutil

import pytest

from conftest import tar_gz_bytes, zip_bytes
from meshgate.core.errors import ExtractionError
from meshgate.install.extractor import TAR_GZ, ZIP, archive_format_for, external_command, extract


class TestFormat:
    def test_infer(self):
        assert archive_format_for("easytier.zip") == ZIP
        assert archive_format_for("sing-box.tar.gz") == TAR_GZ
        assert archive_format_for("x.TGZ") == TAR_GZ

    def test_unknown(self):
        with pytest.raises(ExtractionError):
            archive_format_for("x.7z")

    def test_external_commands(self, tmp_path):
        a, d = tmp_path / "a.zip", tmp_path / "out"
        assert external_command(a, d, ZIP) == ["unzip", "-o", str(a), "-d", str(d)]
        assert external_command(a, d, TAR_GZ) == ["tar", "-xzf", str(a), "-C", str(d)]


@pytest.mark.asyncio
async def test_builtin_zip(tmp_path):
    archive = tmp_path / "a.zip"
    archive.write_bytes(zip_bytes({"dir/tool": b"bin"}))
    out = await extract(archive, tmp_path / "out", method="builtin")
    assert (out / "dir" / "tool").read_bytes() == b"bin"


@pytest.mark.asyncio
async def test_builtin_tar_gz(tmp_path):
    archive = tmp_path / "a.tar.gz"
    archive.write_bytes(tar_gz_bytes({"dir/tool": b"bin"}))
    out = await extract(archive, tmp_path / "out", method="builtin")
    assert (out / "dir" / "tool").read_bytes() == b"bin"


@pytest.mark.asyncio
async def test_builtin_corrupt_archive(tmp_path):
    archive = tmp_path / "a.zip"
    archive.write_bytes(b"not a zip")
    with pytest.raises(ExtractionError):
        await extract(archive, tmp_path / "out", method="builtin")


@pytest.mark.asyncio
@pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")
async def test_external_tar(tmp_path):
    archive = tmp_path / "a.tar.gz"
    archive.write_bytes(tar_gz_bytes({"dir/tool": b"bin"}))
    out = await extract(archive, tmp_path / "out", method="external")
    assert (out / "dir" / "tool").read_bytes() == b"bin"


@pytest.mark.asyncio
@pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")
async def test_external_nonzero_exit(tmp_path):
    archive = tmp_path / "a.tar.gz"
    archive.write_bytes(b"garbage")
    with pytest.raises(ExtractionError) as exc:
        await extract(archive, tmp_path / "out", method="external")
    assert exc.value.returncode not in (None, 0)
