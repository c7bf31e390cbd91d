"""Status server: share-link page, background image, status fallback."""

from meshgate.status_server.app import build_server, create_app
from meshgate.status_server.self_check import derive_status

__all__ = ["build_server", "create_app", "derive_status"]
