# storefront/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog entry for a saree.

    `id` is internal; `tracking_id` is the public identifier shown in
    URLs and accepted wherever the API takes a product reference.
    """

    __tablename__ = "products"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True,
    )

    tracking_id: str = Field(
        max_length=64,
        unique=True,
        index=True,
        description="Public product identifier (unique)",
    )

    name: str = Field(
        max_length=150,
        min_length=3,
        index=True,
        description="Display name of the saree",
    )

    fabric: str | None = Field(
        default=None,
        max_length=50,
        description="Silk, cotton, chiffon, ...",
    )

    description: str | None = None

    price: float = Field(
        gt=0,
        description="Unit price (INR)",
    )

    in_stock: int = Field(
        default=0,
        ge=0,
        description="Units available for online orders",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    image_url: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
