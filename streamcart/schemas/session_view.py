"""View record ODM schema: one row per viewing span of a connection in a session."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import Field, field_validator
from pymongo import ASCENDING, IndexModel

from streamcart.shared.time_utils import utc_now
from streamcart.utils.idgen import new_view_id

from .schema_utils import parse_mongo_datetime
from .session_state import ViewerRole


class SessionView(Document):
    """Durable audit row. Active while `left_at` is None; never deleted."""

    view_id: Indexed(str, unique=True) = Field(default_factory=new_view_id)  # type: ignore[valid-type]
    session_id: str
    user_id: str | None = None
    connection_id: str | None = None
    role: ViewerRole = ViewerRole.SUBSCRIBER

    joined_at: datetime = Field(default_factory=utc_now)
    left_at: datetime | None = None

    # whole seconds, set when the span closes
    watch_duration: int = 0

    @field_validator("joined_at", "left_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    @property
    def is_active(self) -> bool:
        return self.left_at is None

    class Settings:
        name = "session_view"
        indexes = [
            IndexModel(
                [("session_id", ASCENDING), ("user_id", ASCENDING), ("left_at", ASCENDING)],
                name="idx_session_user_active",
            ),
            IndexModel(
                [("connection_id", ASCENDING), ("left_at", ASCENDING)],
                name="idx_connection_active",
            ),
            IndexModel(
                [("session_id", ASCENDING), ("joined_at", ASCENDING)],
                name="idx_session_joined",
            ),
        ]


__all__ = ["SessionView"]
