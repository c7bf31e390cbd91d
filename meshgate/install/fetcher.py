"""Download a URL to a local file, following redirects up to a fixed cap."""

import logging
from pathlib import Path
from typing import Optional, Union

import httpx

from meshgate.core.errors import DownloadError, TooManyRedirects

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 10
_REDIRECT_CODES = (301, 302, 303, 307, 308)
_CHUNK_SIZE = 64 * 1024
_DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=120.0)


def _discard(path: Path) -> None:
    """Best-effort delete of a partial download."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not remove partial file %s: %s", path, e)


async def _fetch_with(client: httpx.AsyncClient, url: str, dest: Path, max_redirects: int) -> Path:
    current = httpx.URL(url)
    for hop in range(max_redirects + 1):
        try:
            async with client.stream("GET", current, follow_redirects=False) as response:
                if response.status_code in _REDIRECT_CODES:
                    _discard(dest)
                    location = response.headers.get("location")
                    if not location:
                        raise DownloadError(
                            f"Redirect {response.status_code} without Location from {current}",
                            status_code=response.status_code,
                            url=str(current),
                        )
                    current = current.join(location)
                    logger.debug("Redirect %s -> %s (hop %d)", response.status_code, current, hop + 1)
                    continue
                if not 200 <= response.status_code < 300:
                    _discard(dest)
                    raise DownloadError(
                        f"Download failed: HTTP {response.status_code} for {current}",
                        status_code=response.status_code,
                        url=str(current),
                    )
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                        f.write(chunk)
                logger.info("Downloaded %s -> %s (%d bytes)", current, dest, dest.stat().st_size)
                return dest
        except httpx.HTTPError as e:
            _discard(dest)
            raise DownloadError(f"Download failed: {e}", url=str(current)) from e
    _discard(dest)
    raise TooManyRedirects(f"More than {max_redirects} redirects fetching {url}", url=url)


async def fetch(
    url: str,
    destination: Union[str, Path],
    client: Optional[httpx.AsyncClient] = None,
    max_redirects: int = MAX_REDIRECTS,
) -> Path:
    """Download url to destination. Returns destination once the file is written and closed.

    Raises DownloadError on non-2xx status or transport error (partial file removed),
    TooManyRedirects when the chain exceeds max_redirects.
    """
    dest = Path(destination)
    if client is not None:
        return await _fetch_with(client, url, dest, max_redirects)
    async with httpx.AsyncClient(timeout=_DEFAULT_TIMEOUT) as own_client:
        return await _fetch_with(own_client, url, dest, max_redirects)
