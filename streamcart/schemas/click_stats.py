"""Persisted per-product click statistics, written once when a session ends."""

from datetime import datetime
from typing import Any

from beanie import Document
from pydantic import Field, field_validator
from pymongo import ASCENDING, DESCENDING, IndexModel

from streamcart.shared.time_utils import utc_now

from .schema_utils import parse_mongo_datetime


class ProductClickStats(Document):
    session_id: str
    product_id: str
    unique_clicks: int = 0
    total_clicks: int = 0
    click_through_rate: float = 0.0
    total_viewers: int = 0
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    class Settings:
        name = "product_click_stats"
        indexes = [
            IndexModel(
                [("session_id", ASCENDING), ("unique_clicks", DESCENDING)],
                name="idx_session_unique_clicks",
            ),
        ]


__all__ = ["ProductClickStats"]
