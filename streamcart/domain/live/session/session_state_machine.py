"""Session state machine for managing state transitions."""

from streamcart.schemas import SessionState


class SessionStateMachine:
    """State machine for live session state transitions.

    State flow with triggers:
    - SCHEDULED -> LIVE (creator starts the broadcast)
    - LIVE -> PAUSED (creator pauses) | ENDED (creator ends)
    - PAUSED -> LIVE (creator resumes) | ENDED (creator ends)
    - ENDED is terminal
    """

    TRANSITIONS: dict[SessionState, set[SessionState]] = {
        SessionState.SCHEDULED: {SessionState.LIVE},
        SessionState.LIVE: {SessionState.ENDED, SessionState.PAUSED},
        SessionState.PAUSED: {SessionState.LIVE, SessionState.ENDED},
        SessionState.ENDED: set(),
    }

    TERMINAL_STATES: set[SessionState] = {SessionState.ENDED}

    @classmethod
    def can_transition(cls, current: SessionState, new: SessionState) -> bool:
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, state: SessionState) -> bool:
        return state in cls.TERMINAL_STATES

    @classmethod
    def get_valid_transitions(cls, state: SessionState) -> set[SessionState]:
        return cls.TRANSITIONS.get(state, set())

    @classmethod
    def get_valid_sources(cls, target: SessionState) -> set[SessionState]:
        """Get all states that can transition to the target state."""
        return {state for state, targets in cls.TRANSITIONS.items() if target in targets}
