"""Child process lifecycle FSM."""

from meshgate.fsm.child_fsm import ChildFSM, ChildState, ChildStatus

__all__ = ["ChildFSM", "ChildState", "ChildStatus"]
