"""Error taxonomy for provisioning and supervision.

Installation-phase errors are caught once by the gateway runner, logged, and end
the startup attempt; the status server keeps answering either way.
"""

from typing import Optional


class MeshGateError(Exception):
    """Base class for all meshgate errors."""


class ConfigError(MeshGateError):
    """Invalid configuration value (bad port, unknown transport)."""


class DownloadError(MeshGateError):
    """Bad HTTP status or transport failure while fetching an archive."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class TooManyRedirects(DownloadError):
    """Redirect chain longer than the fetcher's cap."""


class ExtractionError(MeshGateError):
    """Archive extraction failed (tool exit code, missing tool, corrupt archive)."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class LocateError(MeshGateError):
    """Expected binary not found after extraction."""


class InstallError(MeshGateError):
    """Installing one dependency failed; the cause is chained."""

    def __init__(self, dependency: str, message: str):
        super().__init__(f"{dependency}: {message}")
        self.dependency = dependency


class ReadinessError(MeshGateError):
    """Mesh child exited before it became ready."""
