"""Common enums used across schemas."""

from enum import Enum


class SessionState(str, Enum):
    """Live session lifecycle states.

    State Transition Flow:

    SCHEDULED → LIVE ⇄ PAUSED
                  ↓       ↓
                ENDED ←───┘

    State Descriptions:
    - SCHEDULED: Session created by the creator, not yet on air.
    - LIVE: Creator is broadcasting; viewers join, react, chat and click products.
    - PAUSED: Broadcast temporarily interrupted; live state is kept in memory.
    - ENDED: Session finished. Aggregated engagement has been persisted.

    Terminal states (no further transitions): ENDED
    """

    SCHEDULED = "scheduled"
    LIVE = "live"
    PAUSED = "paused"
    ENDED = "ended"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def active_states(cls) -> list["SessionState"]:
        """States in which the session holds in-memory engagement state."""
        return [SessionState.LIVE, SessionState.PAUSED]


class ViewerRole(str, Enum):
    """Role of a connection inside a live session."""

    PUBLISHER = "publisher"
    SUBSCRIBER = "subscriber"

    def __str__(self) -> str:
        return self.value


__all__ = ["SessionState", "ViewerRole"]
