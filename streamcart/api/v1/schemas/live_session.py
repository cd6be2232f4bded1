from pydantic import BaseModel, Field


class ShowcaseProductIn(BaseModel):
    session_id: str = Field(..., min_length=1)
    product_id: str | None = Field(None, description="Product to showcase, null to clear")
