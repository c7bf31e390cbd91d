"""Child process lifecycle FSM: NOT_STARTED -> RUNNING -> EXITED.

Transition implementation (engine/supervisor.py):
- NOT_STARTED -> RUNNING: ChildProcess.start (spawn succeeded)
- NOT_STARTED -> EXITED: ChildProcess.start (spawn raised OSError; returncode None)
- RUNNING -> EXITED: exit watcher task (process.wait() returned)
- EXITED -> RUNNING: ChildProcess.start called again after exit
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from meshgate.core.logging_utils import log_child_transition

logger = logging.getLogger(__name__)


class ChildState(str, enum.Enum):
    """Per-binary lifecycle states."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    EXITED = "exited"


# Valid transitions: from_state -> set of allowed to_states
_TRANSITIONS: dict[ChildState, set[ChildState]] = {
    ChildState.NOT_STARTED: {ChildState.RUNNING, ChildState.EXITED},
    ChildState.RUNNING: {ChildState.EXITED},
    ChildState.EXITED: {ChildState.RUNNING},
}


@dataclass(frozen=True)
class ChildStatus:
    """Point-in-time view of one child, safe to hand to the status server."""

    name: str
    state: ChildState
    pid: Optional[int] = None
    returncode: Optional[int] = None


class ChildFSM:
    """Tracks one child's state, pid and exit code."""

    def __init__(
        self,
        name: str,
        on_transition: Optional[Callable[[ChildState, ChildState], None]] = None,
    ):
        self.name = name
        self._current = ChildState.NOT_STARTED
        self._pid: Optional[int] = None
        self._returncode: Optional[int] = None
        self._on_transition = on_transition

    @property
    def current(self) -> ChildState:
        return self._current

    @property
    def pid(self) -> Optional[int]:
        return self._pid

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode

    def can_transition_to(self, to_state: ChildState) -> bool:
        """Check if transition from current state to to_state is valid."""
        return to_state in _TRANSITIONS.get(self._current, set())

    def transition(self, to_state: ChildState) -> bool:
        """
        Transition to new state if valid. Returns True on success, False otherwise.
        Calls on_transition(from, to) callback if provided.
        """
        if not self.can_transition_to(to_state):
            logger.warning(
                "Invalid transition for %s: %s -> %s (allowed: %s)",
                self.name,
                self._current.value,
                to_state.value,
                [s.value for s in _TRANSITIONS.get(self._current, set())],
            )
            return False
        from_state = self._current
        self._current = to_state
        log_child_transition(
            self.name, from_state.value, to_state.value, pid=self._pid, returncode=self._returncode
        )
        if self._on_transition:
            try:
                self._on_transition(from_state, to_state)
            except Exception as e:
                logger.debug("on_transition callback error: %s", e)
        return True

    def on_spawned(self, pid: int) -> bool:
        """RUNNING with a fresh pid; clears the previous exit code."""
        if self.can_transition_to(ChildState.RUNNING):
            self._pid = pid
            self._returncode = None
        return self.transition(ChildState.RUNNING)

    def on_exited(self, returncode: Optional[int]) -> bool:
        """EXITED with returncode (None when the spawn itself failed)."""
        if self.can_transition_to(ChildState.EXITED):
            self._returncode = returncode
        return self.transition(ChildState.EXITED)

    def is_running(self) -> bool:
        return self._current == ChildState.RUNNING

    def snapshot(self) -> ChildStatus:
        return ChildStatus(self.name, self._current, self._pid, self._returncode)
