"""Readiness probe for the mesh child: poll a local TCP port with bounded backoff."""

import asyncio
import logging
from typing import Callable

from meshgate.core.errors import ReadinessError

logger = logging.getLogger(__name__)

_CONNECT_TIMEOUT = 1.0


async def port_open(host: str, port: int) -> bool:
    """True if a TCP connect to host:port succeeds."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=_CONNECT_TIMEOUT)
    except (OSError, asyncio.TimeoutError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


async def wait_ready(
    host: str,
    port: int,
    timeout: float,
    is_alive: Callable[[], bool],
    initial_delay: float = 0.25,
    max_delay: float = 2.0,
) -> bool:
    """Poll host:port until it accepts, with exponential backoff capped at max_delay.

    Returns True when ready, False when timeout elapses. Raises ReadinessError if is_alive()
    turns False first. Cancelling the calling task cancels the wait.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    delay = initial_delay
    attempt = 0
    while True:
        attempt += 1
        if not is_alive():
            raise ReadinessError(f"process exited before {host}:{port} became ready")
        if await port_open(host, port):
            logger.info("Ready: %s:%s accepted after %d attempt(s)", host, port, attempt)
            return True
        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.warning("Readiness timeout: %s:%s not open after %.1fs", host, port, timeout)
            return False
        await asyncio.sleep(min(delay, remaining))
        delay = min(delay * 2, max_delay)
