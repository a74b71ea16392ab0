# storefront/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field, UniqueConstraint


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartItem(SQLModel, table=True):
    """
    Shopping cart entry for one owner.

    The owner is either an anonymous session or an authenticated user,
    stored as (owner_kind, owner_id). An owner cannot have 2 rows for the
    same product.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint(
            "owner_kind",
            "owner_id",
            "product_id",
            name="uq_cart_items_owner_product",
        ),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True,
    )

    product_id: str = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    owner_kind: str = Field(
        index=True,
        description="session | user",
    )

    owner_id: str = Field(
        index=True,
        description="Session token or user id, depending on owner_kind",
    )

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
