"""Session domain models."""

from datetime import datetime

from pydantic import BaseModel

from streamcart.domain.live.engagement.engagement_models import ReactionStats, SessionClickStats
from streamcart.schemas import Session, SessionState, ViewerRole


class SessionResponse(BaseModel):
    """Session response model."""

    session_id: str
    creator_id: str
    title: str
    description: str | None = None
    status: SessionState
    channel_name: str | None = None
    active_product_id: str | None = None
    reaction_counts: dict[str, int] | None = None

    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @classmethod
    def from_document(cls, session: Session) -> "SessionResponse":
        return cls(**session.model_dump(exclude={"id", "revision_id"}))


class EndSessionResponse(BaseModel):
    session: SessionResponse
    closed_views: int
    reaction_counts: dict[str, int] | None = None
    persisted_click_products: int


class ShowcasedProduct(BaseModel):
    product_id: str
    name: str
    price: float
    image_url: str | None = None
    in_stock: bool = True

    def to_wire(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": self.price,
            "imageUrl": self.image_url,
            "inStock": self.in_stock,
        }


class ShowcaseResponse(BaseModel):
    session_id: str
    active_product_id: str | None = None
    product: ShowcasedProduct | None = None


class StreamTokenResponse(BaseModel):
    token: str
    channel_name: str
    identity: str
    role: ViewerRole
    url: str | None = None
    expires_at: datetime


class LiveStatsResponse(BaseModel):
    session_id: str
    status: SessionState
    viewer_count: int
    reactions: ReactionStats
    clicks: SessionClickStats
    broadcasting: bool


__all__ = [
    "EndSessionResponse",
    "LiveStatsResponse",
    "SessionResponse",
    "ShowcaseResponse",
    "ShowcasedProduct",
    "StreamTokenResponse",
]
