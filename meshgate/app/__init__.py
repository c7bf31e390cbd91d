"""Gateway entry: status server, provisioning, supervision."""

from meshgate.app.gateway import Gateway, main, run_gateway

__all__ = ["Gateway", "main", "run_gateway"]
