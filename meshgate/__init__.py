"""meshgate: provision and supervise a mesh client and a proxy server behind a small status page."""

__version__ = "0.1.0"
