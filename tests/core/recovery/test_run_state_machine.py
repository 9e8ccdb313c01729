"""
Tests for the retry run state machine.
"""

import pytest

from smartswap.core.recovery import InvalidTransitionError, RunState, RunStateMachine
from smartswap.core.recovery.state_machine import TERMINAL_STATES


class TestRunStateMachine:
    """Transition validation and history."""

    def test_initial_state(self):
        machine = RunStateMachine()

        assert machine.current_state == RunState.SELECT_NEXT_TUPLE
        assert machine.is_terminal is False
        assert machine.visited() == [RunState.SELECT_NEXT_TUPLE]

    def test_failed_attempt_cycle(self):
        machine = RunStateMachine()
        for state in (
            RunState.INVOKE,
            RunState.CLASSIFY,
            RunState.DECIDE_CONTINUATION,
            RunState.BACKOFF,
            RunState.SELECT_NEXT_TUPLE,
            RunState.INVOKE,
            RunState.SUCCESS,
        ):
            machine.transition_to(state)

        assert machine.is_terminal is True
        assert len(machine.history) == 7
        assert machine.visited()[0] == RunState.SELECT_NEXT_TUPLE
        assert machine.visited()[-1] == RunState.SUCCESS

    def test_family_skip_bypasses_backoff(self):
        machine = RunStateMachine()
        machine.transition_to(RunState.INVOKE)
        machine.transition_to(RunState.CLASSIFY)
        machine.transition_to(RunState.DECIDE_CONTINUATION)

        assert machine.can_transition_to(RunState.SELECT_NEXT_TUPLE) is True
        machine.transition_to(RunState.SELECT_NEXT_TUPLE, reason="family skipped")
        assert machine.history[-1].reason == "family skipped"

    def test_invalid_transition_raises(self):
        machine = RunStateMachine()

        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.transition_to(RunState.BACKOFF)

        assert exc_info.value.from_state == RunState.SELECT_NEXT_TUPLE
        assert exc_info.value.to_state == RunState.BACKOFF
        assert machine.current_state == RunState.SELECT_NEXT_TUPLE

    def test_invoke_cannot_skip_classification(self):
        machine = RunStateMachine(RunState.INVOKE)

        assert machine.can_transition_to(RunState.DECIDE_CONTINUATION) is False
        assert machine.can_transition_to(RunState.BACKOFF) is False

    @pytest.mark.parametrize("state", sorted(TERMINAL_STATES, key=lambda s: s.value))
    def test_terminal_states_have_no_exits(self, state):
        machine = RunStateMachine(state)

        assert machine.is_terminal is True
        assert not any(machine.can_transition_to(s) for s in RunState)

    def test_cancel_only_from_select_or_backoff(self):
        sources = {
            state for state, targets in RunStateMachine.TRANSITIONS.items()
            if RunState.CANCELLED in targets
        }
        assert sources == {RunState.SELECT_NEXT_TUPLE, RunState.BACKOFF}

    def test_transition_to_dict(self):
        machine = RunStateMachine()
        transition = machine.transition_to(RunState.INVOKE, attempt=1)

        data = transition.to_dict()

        assert data["fromState"] == "select_next_tuple"
        assert data["toState"] == "invoke"
        assert data["attempt"] == 1
