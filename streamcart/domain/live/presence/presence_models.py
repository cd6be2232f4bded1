"""Presence domain models."""

from datetime import datetime

from pydantic import BaseModel

from streamcart.schemas import Session, ViewerRole


class Membership(BaseModel):
    """Ephemeral attachment of one connection to one session."""

    connection_id: str
    session_id: str
    role: ViewerRole
    user_id: str | None = None
    joined_at: datetime


class JoinResult(BaseModel):
    session_id: str
    connection_id: str
    role: ViewerRole
    is_reconnection: bool = False
    view_id: str


class ViewerAggregates(BaseModel):
    unique_viewers: int
    total_views: int
    avg_watch_time: int
    peak_viewers: int


def resolve_role(session: Session, user_id: str | None) -> ViewerRole:
    """The creator of the session publishes; everyone else watches."""
    if session.is_creator(user_id):
        return ViewerRole.PUBLISHER
    return ViewerRole.SUBSCRIBER


__all__ = ["JoinResult", "Membership", "ViewerAggregates", "resolve_role"]
