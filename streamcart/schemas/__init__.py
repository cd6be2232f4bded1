"""Beanie ODM schemas for MongoDB collections."""

from .chat_message import ChatMessage
from .click_stats import ProductClickStats
from .init import DOCUMENT_MODELS, init_beanie_odm
from .product import Product, SessionProduct
from .session import Session
from .session_state import SessionState, ViewerRole
from .session_view import SessionView

__all__ = [
    "ChatMessage",
    "DOCUMENT_MODELS",
    "Product",
    "ProductClickStats",
    "Session",
    "SessionProduct",
    "SessionState",
    "SessionView",
    "ViewerRole",
    "init_beanie_odm",
]
