"""Live-commerce domain logic."""
