"""Product catalog ODM schemas read by the live engine."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import Field, field_validator
from pymongo import ASCENDING, IndexModel

from streamcart.shared.time_utils import utc_now
from streamcart.utils.idgen import new_product_id

from .schema_utils import parse_mongo_datetime


class Product(Document):
    product_id: Indexed(str, unique=True) = Field(default_factory=new_product_id)  # type: ignore[valid-type]
    name: str
    price: float = 0.0
    image_url: str | None = None
    in_stock: bool = True
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    class Settings:
        name = "product"


class SessionProduct(Document):
    """Attachment of a product to a session's showcase list."""

    session_id: str
    product_id: str
    featured: bool = False
    display_order: int = 0

    class Settings:
        name = "session_product"
        indexes = [
            IndexModel(
                [("session_id", ASCENDING), ("product_id", ASCENDING)],
                name="idx_session_product",
                unique=True,
            ),
        ]


__all__ = ["Product", "SessionProduct"]
