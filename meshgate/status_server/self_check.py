"""Derive the plain-text status line from child statuses."""

from typing import Any, Dict, List, Mapping

from meshgate.fsm.child_fsm import ChildState, ChildStatus

STATUS_TEXT = {
    "online": "System Online",
    "degraded": "System Degraded",
    "initializing": "System Initializing...",
}


def derive_status(statuses: Mapping[str, ChildStatus]) -> Dict[str, Any]:
    """Compute state (online/degraded/initializing), exited children and the status text.

    online: every child RUNNING. degraded: any child EXITED. initializing: otherwise
    (install still in progress, failed before spawn, or waiting on mesh readiness).
    """
    exited: List[str] = [name for name, st in statuses.items() if st.state == ChildState.EXITED]
    if statuses and all(st.state == ChildState.RUNNING for st in statuses.values()):
        state = "online"
    elif exited:
        state = "degraded"
    else:
        state = "initializing"
    return {"state": state, "exited": exited, "text": STATUS_TEXT[state]}
