"""
Retry Run State Machine

States and the allowed transitions for a single retry run. The executor
drives the run by returning the next state from each state handler; the
machine validates every move against TRANSITIONS and keeps the history.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .errors import InvalidTransitionError


class RunState(str, Enum):
    """States of a retry run."""

    SELECT_NEXT_TUPLE = "select_next_tuple"      # Pick the next untried strategy tuple
    INVOKE = "invoke"                            # Call the swap operation
    CLASSIFY = "classify"                        # Classify and record the failure
    DECIDE_CONTINUATION = "decide_continuation"  # Severity gate / family skip
    BACKOFF = "backoff"                          # Wait before the next attempt
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


TERMINAL_STATES: Set[RunState] = {
    RunState.SUCCESS,
    RunState.EXHAUSTED,
    RunState.CANCELLED,
}


@dataclass
class StateTransition:
    """Record of a state transition."""

    from_state: RunState
    to_state: RunState
    attempt: int = 0
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromState": self.from_state.value,
            "toState": self.to_state.value,
            "attempt": self.attempt,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


class RunStateMachine:
    """Validates and records the transitions of one retry run."""

    TRANSITIONS: Dict[RunState, Set[RunState]] = {
        RunState.SELECT_NEXT_TUPLE: {
            RunState.INVOKE,
            RunState.EXHAUSTED,   # No tuples left
            RunState.CANCELLED,
        },
        RunState.INVOKE: {
            RunState.SUCCESS,
            RunState.CLASSIFY,
        },
        RunState.CLASSIFY: {
            RunState.DECIDE_CONTINUATION,
        },
        RunState.DECIDE_CONTINUATION: {
            RunState.BACKOFF,
            RunState.SELECT_NEXT_TUPLE,  # Family skipped, no wait
            RunState.EXHAUSTED,          # Nothing left to wait for
        },
        RunState.BACKOFF: {
            RunState.SELECT_NEXT_TUPLE,
            RunState.CANCELLED,          # Interrupted while waiting
        },
        RunState.SUCCESS: set(),
        RunState.EXHAUSTED: set(),
        RunState.CANCELLED: set(),
    }

    def __init__(self, initial_state: RunState = RunState.SELECT_NEXT_TUPLE):
        self._state = initial_state
        self.history: List[StateTransition] = []

    @property
    def current_state(self) -> RunState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def can_transition_to(self, to_state: RunState) -> bool:
        return to_state in self.TRANSITIONS.get(self._state, set())

    def transition_to(
        self,
        to_state: RunState,
        attempt: int = 0,
        reason: Optional[str] = None,
    ) -> StateTransition:
        """
        Move to ``to_state``.

        Raises:
            InvalidTransitionError: If the move is not in TRANSITIONS
        """
        from_state = self._state
        if not self.can_transition_to(to_state):
            raise InvalidTransitionError(
                from_state=from_state,
                to_state=to_state,
                message=f"Invalid transition from {from_state.value} to {to_state.value}. "
                        f"Allowed: {sorted(s.value for s in self.TRANSITIONS.get(from_state, set()))}",
            )

        transition = StateTransition(
            from_state=from_state,
            to_state=to_state,
            attempt=attempt,
            reason=reason,
        )
        self._state = to_state
        self.history.append(transition)
        return transition

    def visited(self) -> List[RunState]:
        """States entered, in order, starting with the initial state."""
        if not self.history:
            return [self._state]
        return [self.history[0].from_state] + [t.to_state for t in self.history]
