"""Supervision: child processes, readiness probe."""

from meshgate.engine.supervisor import ChildProcess, Supervisor, mesh_command, proxy_command

__all__ = ["ChildProcess", "Supervisor", "mesh_command", "proxy_command"]
