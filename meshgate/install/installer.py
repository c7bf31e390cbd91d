"""Install release binaries: download -> extract -> locate -> move -> chmod -> clean up.

Idempotent per dependency: an existing destination binary short-circuits the whole sequence.
No version tracking, no checksum, no retry; failures surface as InstallError.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple

import httpx

from meshgate.config.settings import Settings
from meshgate.core.errors import InstallError, LocateError, MeshGateError
from meshgate.core.logging_utils import log_install_step
from meshgate.install.extractor import TAR_GZ, ZIP, archive_format_for, extract
from meshgate.install.fetcher import fetch
from meshgate.install.locator import locate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencySpec:
    """One externally built binary: where to get it and where it ends up."""

    name: str
    url: str
    archive_name: str
    binary_match: str
    destination: Path
    excluded_suffix: Optional[str] = None
    archive_format: Optional[str] = None

    @property
    def format(self) -> str:
        return self.archive_format or archive_format_for(self.archive_name)


def dependency_specs(settings: Settings) -> Tuple[DependencySpec, DependencySpec]:
    """Standard (mesh, proxy) specs derived from settings."""
    mesh = DependencySpec(
        name="mesh",
        url=settings.mesh.url,
        archive_name="mesh_temp.zip",
        binary_match=settings.mesh.binary_match,
        destination=settings.mesh_binary,
        archive_format=ZIP,
    )
    proxy = DependencySpec(
        name="proxy",
        url=settings.proxy.url,
        archive_name="proxy_temp.tar.gz",
        binary_match=settings.proxy.binary_match,
        destination=settings.proxy_binary,
        excluded_suffix=".tar.gz",
        archive_format=TAR_GZ,
    )
    return mesh, proxy


async def ensure_installed(
    spec: DependencySpec,
    work_dir: Path,
    client: Optional[httpx.AsyncClient] = None,
    extract_method: str = "external",
) -> bool:
    """Install spec into work_dir unless its destination exists. Returns True if it installed."""
    if spec.destination.exists():
        log_install_step(spec.name, "skip", destination=spec.destination)
        return False

    work_dir.mkdir(parents=True, exist_ok=True)
    archive = work_dir / spec.archive_name
    staging = work_dir / f".extract-{spec.name}"
    try:
        log_install_step(spec.name, "download", url=spec.url)
        await fetch(spec.url, archive, client=client)

        log_install_step(spec.name, "extract", archive=archive.name, method=extract_method)
        if staging.exists():
            shutil.rmtree(staging)
        await extract(archive, staging, spec.format, method=extract_method)

        found = locate(staging, spec.binary_match, spec.excluded_suffix)
        if found is None:
            raise LocateError(f"binary not found after extraction (match={spec.binary_match!r})")
        log_install_step(spec.name, "locate", found=found.relative_to(staging))

        spec.destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(found), str(spec.destination))
        spec.destination.chmod(0o755)
        archive.unlink(missing_ok=True)
        shutil.rmtree(staging, ignore_errors=True)
        log_install_step(spec.name, "installed", destination=spec.destination)
        return True
    except MeshGateError as e:
        raise InstallError(spec.name, str(e)) from e
    except OSError as e:
        raise InstallError(spec.name, f"filesystem error: {e}") from e


async def install_all(
    specs: Iterable[DependencySpec],
    work_dir: Path,
    client: Optional[httpx.AsyncClient] = None,
    extract_method: str = "external",
) -> None:
    """Install specs strictly in order; the first failure stops the sequence."""
    for spec in specs:
        await ensure_installed(spec, work_dir, client=client, extract_method=extract_method)
