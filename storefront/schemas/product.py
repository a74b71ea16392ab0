# storefront/schemas/product.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class ProductBase(SQLModel):
    """
    Shared fields for product read models.
    """

    name: str = Field(max_length=150, min_length=3)
    tracking_id: str
    fabric: str | None = None
    description: str | None = None
    price: float = Field(gt=0)
    in_stock: int = Field(default=0, ge=0)
    is_active: bool = True
    image_url: str | None = None


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - tracking_id is optional: if omitted, one is generated.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=150)
    tracking_id: str | None = Field(default=None, max_length=64)
    fabric: str | None = Field(default=None, max_length=50)
    description: str | None = None
    price: float = Field(gt=0)
    in_stock: int = Field(default=0, ge=0)
    is_active: bool = True
    image_url: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("name must have at least 3 characters")
        return v

    @field_validator("tracking_id")
    @classmethod
    def normalize_tracking_id(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().upper()
        if not v:
            raise ValueError("tracking_id cannot be empty if provided")
        return v


class ProductRead(ProductBase):
    """
    Product representation for clients.
    """

    id: str
    created_at: datetime
