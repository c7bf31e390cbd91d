"""Logging setup and structured lines for install steps and child process transitions."""

import logging
import sys
import uuid
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ANSI color codes
_RESET = "\033[0m"
_BOLD = "\033[1m"
_GRAY = "\033[90m"
_YELLOW = "\033[33m"
_RED = "\033[31m"
_CYAN = "\033[36m"

_LEVEL_COLORS = {
    logging.DEBUG: _GRAY,
    logging.INFO: _CYAN,
    logging.WARNING: _YELLOW,
    logging.ERROR: _RED + _BOLD,
    logging.CRITICAL: _RED + _BOLD,
}


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors per log level."""

    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelno, _RESET)
        record.levelname = f"{color}[{record.levelname}]{_RESET}"
        return super().format(record)


def setup_logging(debug: bool = False) -> None:
    """Configure colorful logging on stdout, shared with the children's inherited output."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.root.handlers.clear()
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG if debug else logging.INFO)
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def _ensure_trace_id(extra: dict) -> str:
    trace_id = extra.get("trace_id")
    if not trace_id:
        trace_id = str(uuid.uuid4())[:8]
        extra["trace_id"] = trace_id
    return trace_id


def _format(kind: str, extra: dict) -> str:
    return kind + " " + " ".join(f"{k}={v}" for k, v in sorted(extra.items()))


def log_install_step(
    dependency: str,
    step: str,
    trace_id: Optional[str] = None,
    **fields: Any,
) -> None:
    """Log one installer step (download, extract, locate, install, skip) as key-value."""
    extra: dict = {k: v for k, v in fields.items() if v is not None}
    if trace_id:
        extra["trace_id"] = trace_id
    _ensure_trace_id(extra)
    extra["dependency"] = dependency
    extra["step"] = step
    logger.info(_format("install_step", extra))


def log_child_transition(
    child: str,
    from_state: str,
    to_state: str,
    pid: Optional[int] = None,
    returncode: Optional[int] = None,
    extra: Optional[dict] = None,
) -> None:
    """Log child FSM transition: child, from_state, to_state, pid, returncode."""
    extra = extra or {}
    _ensure_trace_id(extra)
    extra["child"] = child
    extra["from_state"] = from_state
    extra["to_state"] = to_state
    if pid is not None:
        extra["pid"] = pid
    if returncode is not None:
        extra["returncode"] = returncode
    logger.info(_format("child_transition", extra))
