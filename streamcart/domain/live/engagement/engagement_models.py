"""Engagement domain models."""

from datetime import datetime

from pydantic import BaseModel, Field


class ProductClickStat(BaseModel):
    product_id: str
    unique_clicks: int
    total_clicks: int
    click_through_rate: float

    def to_wire(self) -> dict:
        return {
            "productId": self.product_id,
            "uniqueClicks": self.unique_clicks,
            "totalClicks": self.total_clicks,
            "clickThroughRate": self.click_through_rate,
        }


class SessionClickStats(BaseModel):
    session_id: str
    product_stats: list[ProductClickStat] = Field(default_factory=list)
    total_viewers: int = 0


class PersistedClickStat(ProductClickStat):
    total_viewers: int
    created_at: datetime


class ReactionStats(BaseModel):
    session_id: str
    percentages: dict[str, int] = Field(default_factory=dict)
    total: int = 0

    def to_wire(self) -> dict:
        return {"sessionId": self.session_id, "percentages": self.percentages, "total": self.total}


__all__ = ["PersistedClickStat", "ProductClickStat", "ReactionStats", "SessionClickStats"]
