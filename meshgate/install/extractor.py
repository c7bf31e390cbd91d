"""Unpack release archives (zip, tar.gz) off the event loop."""

import asyncio
import logging
import shutil
import subprocess
import tarfile
import zipfile
from pathlib import Path
from typing import List, Optional, Union

from meshgate.core.errors import ExtractionError

logger = logging.getLogger(__name__)

ZIP = "zip"
TAR_GZ = "tar.gz"

_EXTRACT_TIMEOUT = 300.0


def archive_format_for(name: str) -> str:
    """Infer archive format from a file name."""
    lower = name.lower()
    if lower.endswith(".zip"):
        return ZIP
    if lower.endswith((".tar.gz", ".tgz")):
        return TAR_GZ
    raise ExtractionError(f"Unsupported archive type: {name}")


def external_command(archive: Path, destination: Path, archive_format: str) -> List[str]:
    """Command line for the system extraction tool."""
    if archive_format == ZIP:
        return ["unzip", "-o", str(archive), "-d", str(destination)]
    if archive_format == TAR_GZ:
        return ["tar", "-xzf", str(archive), "-C", str(destination)]
    raise ExtractionError(f"Unsupported archive format: {archive_format}")


def _run_external(archive: Path, destination: Path, archive_format: str) -> None:
    cmd = external_command(archive, destination, archive_format)
    try:
        out = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=_EXTRACT_TIMEOUT,
            check=False,
        )
    except FileNotFoundError:
        raise ExtractionError(f"{cmd[0]} not found; install it or set supervisor.extract_method=builtin") from None
    except subprocess.TimeoutExpired:
        raise ExtractionError(f"{cmd[0]} timed out after {_EXTRACT_TIMEOUT:.0f}s") from None
    if out.returncode != 0:
        raise ExtractionError(
            f"{cmd[0]} exited with {out.returncode}: {(out.stderr or '').strip()[:500]}",
            returncode=out.returncode,
        )


def _run_builtin(archive: Path, destination: Path, archive_format: str) -> None:
    fmt = "zip" if archive_format == ZIP else "gztar"
    try:
        shutil.unpack_archive(str(archive), str(destination), format=fmt)
    except (OSError, ValueError, EOFError, zipfile.BadZipFile, tarfile.TarError) as e:
        raise ExtractionError(f"Cannot unpack {archive.name}: {e}") from e


async def extract(
    archive: Union[str, Path],
    destination: Union[str, Path],
    archive_format: Optional[str] = None,
    method: str = "external",
) -> Path:
    """Extract archive into destination in a worker thread. Returns destination."""
    archive = Path(archive)
    destination = Path(destination)
    archive_format = archive_format or archive_format_for(archive.name)
    destination.mkdir(parents=True, exist_ok=True)
    runner = _run_external if method == "external" else _run_builtin
    logger.debug("Extracting %s (%s, %s) into %s", archive, archive_format, method, destination)
    await asyncio.to_thread(runner, archive, destination, archive_format)
    return destination
