"""Gateway: status server + install + supervise on one asyncio loop.

The status server comes up first and keeps answering whatever happens to provisioning.
Provisioning installs both binaries in sequence, writes the proxy config, then launches the
children. Any failure ends the attempt (logged, no retry); children are SIGKILLed on stop.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Any, Callable, Optional

import httpx

from meshgate.config.settings import Settings, load_settings, read_config
from meshgate.core.errors import MeshGateError
from meshgate.core.logging_utils import setup_logging
from meshgate.engine.supervisor import Supervisor
from meshgate.install.installer import dependency_specs, install_all
from meshgate.proxy.config_writer import write_proxy_config
from meshgate.status_server.app import build_server, create_app

logger = logging.getLogger(__name__)


class Gateway:
    """Owns settings, supervisor, status app and the provisioning task."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.supervisor = Supervisor(settings)
        self.app = create_app(settings, self.supervisor)
        self.startup_error: Optional[str] = None
        self._client = client
        self._stop_event: Optional[asyncio.Event] = None

    async def provision(self) -> bool:
        """Install, write proxy config, launch children. Returns False (and logs) on failure."""
        s = self.settings
        try:
            s.work_dir.mkdir(parents=True, exist_ok=True)
            await install_all(
                dependency_specs(s),
                s.work_dir,
                client=self._client,
                extract_method=s.supervisor.extract_method,
            )
            write_proxy_config(s.proxy, s.proxy_config_path)
            await self.supervisor.launch(s.mesh_binary, s.proxy_binary)
        except MeshGateError as e:
            self.startup_error = str(e)
            logger.error("Initialization failed: %s", e)
            return False
        except OSError as e:
            self.startup_error = str(e)
            logger.exception("Initialization failed (filesystem/spawn): %s", e)
            return False
        logger.info("Both children started (mesh pid=%s, proxy pid=%s)", self.supervisor.mesh.pid, self.supervisor.proxy.pid)
        return True

    async def run(self) -> None:
        """Serve status, provision in the background, wait for stop, then kill children."""
        self._stop_event = asyncio.Event()
        server = build_server(self.settings, self.app)
        server_task = asyncio.create_task(server.serve(), name="status-server")
        provision_task = asyncio.create_task(self.provision(), name="provision")
        stop_task = asyncio.create_task(self._stop_event.wait(), name="stop")
        try:
            await asyncio.wait({server_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            logger.info("Stopping: killing children")
            self.supervisor.kill_all()
            provision_task.cancel()
            stop_task.cancel()
            server.should_exit = True
            results = await asyncio.gather(server_task, provision_task, stop_task, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                    logger.error("Task ended with error: %s", result)
            await self.supervisor.shutdown()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()


def install_signal_handlers(loop: asyncio.AbstractEventLoop, gateway: Gateway) -> Callable[..., None]:
    """Register SIGTERM/SIGINT on loop: SIGKILL both children, then gateway.stop(). Returns the handler."""

    def _on_stop_signal(*_args: Any) -> None:
        logger.info("Received SIGTERM/SIGINT; killing children and exiting")
        gateway.supervisor.kill_all()
        loop.call_soon_threadsafe(gateway.stop)

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _on_stop_signal)
        except (NotImplementedError, OSError):
            pass  # add_signal_handler not supported on Windows
    return _on_stop_signal


async def _run_gateway_main(config_path: Optional[str] = None) -> None:
    """Load config, register signals, run Gateway."""
    config, resolved_path = read_config(config_path)
    settings = load_settings(config)
    logger.info("Config: %s; work_dir=%s", resolved_path or "defaults + env", settings.work_dir)
    gateway = Gateway(settings)
    install_signal_handlers(asyncio.get_running_loop(), gateway)
    await gateway.run()


def run_gateway(config_path: Optional[str] = None) -> None:
    """Entry: run the gateway until SIGTERM/SIGINT."""
    asyncio.run(_run_gateway_main(config_path))


def main() -> None:
    """Console entry: meshgate [config.yaml] [--debug]."""
    setup_logging(debug="--debug" in sys.argv)
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    config_path = os.path.abspath(args[0]) if args else None
    run_gateway(config_path)


if __name__ == "__main__":
    main()
