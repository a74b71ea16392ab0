# storefront/models/wishlist.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field, UniqueConstraint


class WishlistItem(SQLModel, table=True):
    """
    A product saved by a user for later.
    A user cannot save the same product twice.
    """

    __tablename__ = "wishlist_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    product_id: str = Field(
        foreign_key="products.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
