"""Live-commerce real-time aggregation service."""
