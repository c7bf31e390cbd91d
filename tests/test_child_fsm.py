"""Child lifecycle FSM: transitions, pid/returncode bookkeeping, transition table coverage."""

import meshgate.fsm.child_fsm as child_fsm_module
from meshgate.fsm.child_fsm import ChildFSM, ChildState

_TRANSITIONS = child_fsm_module._TRANSITIONS


class TestChildFSM:
    def test_starts_not_started(self):
        fsm = ChildFSM("mesh")
        assert fsm.current == ChildState.NOT_STARTED
        assert fsm.pid is None
        assert fsm.is_running() is False

    def test_spawn_then_exit(self):
        fsm = ChildFSM("mesh")
        assert fsm.on_spawned(4321)
        assert fsm.current == ChildState.RUNNING
        assert fsm.pid == 4321
        assert fsm.on_exited(1)
        snap = fsm.snapshot()
        assert snap.state == ChildState.EXITED
        assert snap.pid == 4321
        assert snap.returncode == 1

    def test_spawn_failure_goes_straight_to_exited(self):
        fsm = ChildFSM("proxy")
        assert fsm.on_exited(None)
        assert fsm.current == ChildState.EXITED
        assert fsm.returncode is None

    def test_restart_after_exit_clears_returncode(self):
        fsm = ChildFSM("mesh")
        fsm.on_spawned(1)
        fsm.on_exited(-9)
        assert fsm.on_spawned(2)
        assert fsm.pid == 2
        assert fsm.returncode is None

    def test_invalid_transition_rejected(self):
        fsm = ChildFSM("mesh")
        fsm.on_spawned(10)
        assert fsm.on_spawned(11) is False
        assert fsm.pid == 10
        assert fsm.current == ChildState.RUNNING

    def test_on_transition_callback(self):
        seen = []
        fsm = ChildFSM("mesh", on_transition=lambda a, b: seen.append((a, b)))
        fsm.on_spawned(1)
        fsm.on_exited(0)
        assert seen == [
            (ChildState.NOT_STARTED, ChildState.RUNNING),
            (ChildState.RUNNING, ChildState.EXITED),
        ]

    def test_callback_error_does_not_block_transition(self):
        def boom(_a, _b):
            raise RuntimeError("callback failed")

        fsm = ChildFSM("mesh", on_transition=boom)
        assert fsm.on_spawned(1)
        assert fsm.current == ChildState.RUNNING


def test_transition_table_completeness():
    """All states appear in the table and every state can be left."""
    assert set(_TRANSITIONS.keys()) == set(ChildState)
    for allowed in _TRANSITIONS.values():
        assert allowed
