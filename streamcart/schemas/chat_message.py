"""Chat message ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import Field, field_validator
from pymongo import ASCENDING, DESCENDING, IndexModel

from streamcart.shared.time_utils import utc_now
from streamcart.utils.idgen import new_message_id

from .schema_utils import parse_mongo_datetime


class ChatMessage(Document):
    message_id: Indexed(str, unique=True) = Field(default_factory=new_message_id)  # type: ignore[valid-type]
    session_id: str
    user_id: str
    user_name: str
    message: str
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    class Settings:
        name = "chat_message"
        indexes = [
            IndexModel(
                [("session_id", ASCENDING), ("created_at", DESCENDING)],
                name="idx_session_created",
            ),
        ]


__all__ = ["ChatMessage"]
