"""Session analytics models."""

from datetime import datetime

from pydantic import BaseModel, Field

from streamcart.schemas import SessionState, ViewerRole


class ViewerSummary(BaseModel):
    unique: int
    total: int
    peak: int
    avg_watch_time: int
    avg_watch_time_formatted: str


class ProductSummary(BaseModel):
    product_id: str
    featured: bool
    display_order: int


class ProductsSummary(BaseModel):
    total: int
    featured: int
    items: list[ProductSummary] = Field(default_factory=list)


class ReactionSummary(BaseModel):
    total: int
    breakdown: dict[str, int] = Field(default_factory=dict)


class TimelineBucket(BaseModel):
    timestamp: str
    joins: int = 0
    leaves: int = 0


class RetentionRange(BaseModel):
    label: str
    count: int


class RetentionStats(BaseModel):
    ranges: list[RetentionRange] = Field(default_factory=list)
    median: int = 0
    median_formatted: str | None = None
    p75: int = 0
    p75_formatted: str | None = None
    p90: int = 0
    p90_formatted: str | None = None


class EngagementSummary(BaseModel):
    viewer_timeline: list[TimelineBucket]
    retention: RetentionStats
    messages: int


class SessionAnalytics(BaseModel):
    session_id: str
    title: str
    status: SessionState
    creator_id: str
    created_at: datetime
    updated_at: datetime
    viewers: ViewerSummary
    products: ProductsSummary
    reactions: ReactionSummary
    engagement: EngagementSummary


class LiveViewer(BaseModel):
    view_id: str
    user_id: str | None = None
    role: ViewerRole
    joined_at: datetime
    watch_duration: int


class LiveViewers(BaseModel):
    session_id: str
    live_viewer_count: int
    viewers: list[LiveViewer]


class ViewerRecord(BaseModel):
    view_id: str
    user_id: str | None = None
    role: ViewerRole
    joined_at: datetime
    left_at: datetime | None = None
    watch_duration: int
    watch_duration_formatted: str | None = None
    is_active: bool


class ViewerList(BaseModel):
    session_id: str
    total: int
    viewers: list[ViewerRecord]


class ClickStatsRow(BaseModel):
    product_id: str
    product_name: str | None = None
    unique_clicks: int
    total_clicks: int
    click_through_rate: float
    created_at: datetime | None = None


class ClickStatsReport(BaseModel):
    session_id: str
    session_status: SessionState
    total_viewers: int
    products: list[ClickStatsRow]


class CreatorSessionsSummary(BaseModel):
    total: int
    by_status: dict[str, int]


class CreatorViewersSummary(BaseModel):
    total_unique: int
    average_per_session: int
    peak_concurrent: int


class CreatorProductsSummary(BaseModel):
    total_clicks: int
    unique_users: int
    average_ctr: float


class CreatorAnalytics(BaseModel):
    creator_id: str
    sessions: CreatorSessionsSummary
    viewers: CreatorViewersSummary
    reactions: ReactionSummary
    products: CreatorProductsSummary
