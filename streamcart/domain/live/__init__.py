"""
Live streaming domain logic.

Includes:
- session: Session lifecycle (start, pause, end, showcase) and stream tokens.
- presence: Viewer registry and watch-time aggregates.
- engagement: Reaction and product click tallies.
- broadcast: Per-session fan-out and the periodic stats broadcast.
- events: Inbound WebSocket event routing.
- chat: Chat persistence.
- analytics: Post-hoc session analytics.
"""
