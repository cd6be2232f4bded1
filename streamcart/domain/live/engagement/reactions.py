"""In-memory reaction tallies per live session."""

import math
from collections import Counter

from loguru import logger

from streamcart.utils.app_errors import invalid_request


class ReactionAggregator:
    """Counts reactions by type while a session is live.

    A session without a tally has "no data", which callers must keep apart
    from a tally that exists but is empty.
    """

    def __init__(self) -> None:
        self._tallies: dict[str, Counter[str]] = {}

    def record(self, session_id: str, reaction_type: str) -> int:
        reaction_type = (reaction_type or "").strip()
        if not reaction_type:
            raise invalid_request("Reaction type must not be empty")

        tally = self._tallies.setdefault(session_id, Counter())
        tally[reaction_type] += 1
        return tally[reaction_type]

    def snapshot(self, session_id: str) -> dict[str, int] | None:
        tally = self._tallies.get(session_id)
        if tally is None:
            return None
        return dict(tally)

    def total(self, session_id: str) -> int:
        tally = self._tallies.get(session_id)
        return sum(tally.values()) if tally else 0

    def percentages(self, session_id: str) -> dict[str, int]:
        """Share of each type in whole percent, rounded half up. Empty when nothing was recorded."""
        tally = self._tallies.get(session_id)
        total = sum(tally.values()) if tally else 0
        if total <= 0:
            return {}
        return {kind: math.floor(count / total * 100 + 0.5) for kind, count in tally.items()}

    def clear(self, session_id: str) -> None:
        if self._tallies.pop(session_id, None) is not None:
            logger.debug("Cleared reaction tally of session {}", session_id)

    def has_tally(self, session_id: str) -> bool:
        return session_id in self._tallies
