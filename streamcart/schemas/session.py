"""Live session ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import Field, field_validator
from pymongo import ASCENDING, DESCENDING, IndexModel

from streamcart.shared.time_utils import utc_now
from streamcart.utils.idgen import new_session_id

from .schema_utils import parse_mongo_datetime
from .session_state import SessionState


class Session(Document):
    """Live session document model."""

    session_id: Indexed(str, unique=True) = Field(default_factory=new_session_id)  # type: ignore[valid-type]
    creator_id: str

    # Session descriptor fields
    title: str
    description: str | None = None

    status: SessionState = SessionState.SCHEDULED

    # Streaming provider room, assigned on first go-live and reused afterwards
    channel_name: str | None = None

    # Currently showcased product
    active_product_id: str | None = None

    # Reaction tally snapshot written once at session end
    reaction_counts: dict[str, int] | None = None

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @field_validator("created_at", "updated_at", "started_at", "ended_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    def is_creator(self, user_id: str | None) -> bool:
        return bool(user_id) and user_id == self.creator_id

    class Settings:
        name = "live_session"
        indexes = [
            [("session_id", 1)],  # unique handled by Indexed
            IndexModel(
                [("creator_id", ASCENDING), ("created_at", DESCENDING)],
                name="idx_creator_created",
            ),
            "status",
        ]


__all__ = ["Session"]
