"""Spawn and watch the two children: mesh client first, proxy once the mesh is ready."""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from meshgate.config.settings import Settings
from meshgate.core.errors import ReadinessError
from meshgate.engine.readiness import wait_ready
from meshgate.fsm.child_fsm import ChildFSM, ChildStatus

logger = logging.getLogger(__name__)


def mesh_command(settings: Settings, binary: Path) -> List[str]:
    """argv for the mesh client: identity, network, peer, no TUN device, optional MTU/protocol."""
    mesh = settings.mesh
    argv = [
        str(binary),
        "-i", mesh.ip,
        "--network-name", mesh.network_name,
        "--network-secret", mesh.network_secret,
        "-p", mesh.peer,
        "--no-tun",
    ]
    if mesh.mtu is not None:
        argv += ["--mtu", str(mesh.mtu)]
    if mesh.default_protocol:
        argv += ["--default-protocol", mesh.default_protocol]
    return argv


def proxy_command(binary: Path, config_path: Path) -> List[str]:
    """argv for the proxy; config is given relative to the work dir (the child's cwd)."""
    return [str(binary), "run", "-c", config_path.name]


class ChildProcess:
    """One supervised child: process handle, exit watcher task and lifecycle FSM."""

    def __init__(self, name: str):
        self.name = name
        self.fsm = ChildFSM(name)
        self._process: Optional[asyncio.subprocess.Process] = None
        self._watcher: Optional[asyncio.Task] = None

    @property
    def pid(self) -> Optional[int]:
        return self.fsm.pid

    def is_alive(self) -> bool:
        return self.fsm.is_running()

    async def start(self, argv: Sequence[str], cwd: Path) -> None:
        """Spawn argv with inherited stdio. Raises OSError if the binary cannot be executed."""
        if self.fsm.is_running():
            logger.warning("%s already running (pid=%s); not starting again", self.name, self.pid)
            return
        logger.info("Starting %s: %s", self.name, " ".join(argv))
        try:
            process = await asyncio.create_subprocess_exec(*argv, cwd=str(cwd))
        except OSError:
            self.fsm.on_exited(None)
            raise
        self._process = process
        self.fsm.on_spawned(process.pid)
        self._watcher = asyncio.create_task(self._watch(process), name=f"watch-{self.name}")

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        if process is not self._process:
            return
        logger.warning("%s exited (pid=%s, code=%s)", self.name, process.pid, returncode)
        self.fsm.on_exited(returncode)

    def kill(self) -> None:
        """SIGKILL the child if it is still alive."""
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
            logger.info("Killed %s (pid=%s)", self.name, process.pid)
        except ProcessLookupError:
            pass

    async def wait_exited(self) -> None:
        if self._watcher is not None:
            await self._watcher

    def status(self) -> ChildStatus:
        return self.fsm.snapshot()


class Supervisor:
    """Owns both children; the only writer of their state."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self.mesh = ChildProcess("mesh")
        self.proxy = ChildProcess("proxy")

    @property
    def children(self) -> Dict[str, ChildProcess]:
        return {self.mesh.name: self.mesh, self.proxy.name: self.proxy}

    async def _wait_mesh_ready(self) -> None:
        sup = self._settings.supervisor
        if sup.ready_port:
            ready = await wait_ready(sup.ready_host, sup.ready_port, sup.ready_timeout, self.mesh.is_alive)
            if not ready:
                logger.warning("Mesh not ready after %.1fs; starting proxy anyway", sup.ready_timeout)
            return
        await asyncio.sleep(sup.start_delay)
        if not self.mesh.is_alive():
            raise ReadinessError(f"mesh exited within {sup.start_delay:.1f}s of start")

    async def launch(self, mesh_binary: Path, proxy_binary: Path) -> None:
        """Start mesh, wait for readiness, start proxy. ReadinessError leaves the proxy unstarted."""
        work_dir = self._settings.work_dir
        await self.mesh.start(mesh_command(self._settings, mesh_binary), cwd=work_dir)
        await self._wait_mesh_ready()
        await self.proxy.start(proxy_command(proxy_binary, self._settings.proxy_config_path), cwd=work_dir)

    def status(self) -> Dict[str, ChildStatus]:
        return {name: child.status() for name, child in self.children.items()}

    def all_running(self) -> bool:
        return all(child.is_alive() for child in self.children.values())

    def kill_all(self) -> None:
        for child in self.children.values():
            child.kill()

    async def shutdown(self) -> None:
        """Kill every live child and wait for the exit watchers to record it."""
        self.kill_all()
        for child in self.children.values():
            await child.wait_exited()
