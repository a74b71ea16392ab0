# storefront/schemas/wishlist.py
from datetime import datetime

from pydantic import ConfigDict, model_validator
from sqlmodel import SQLModel

from storefront.schemas.product import ProductRead


class WishlistItemCreate(SQLModel):
    """
    Payload for saving a product. Accepts internal id or tracking id.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str | None = None
    tracking_id: str | None = None

    @model_validator(mode="after")
    def require_product_reference(self) -> "WishlistItemCreate":
        if not self.product_id and not self.tracking_id:
            raise ValueError("product_id or tracking_id is required")
        return self

    @property
    def product_ref(self) -> str:
        return self.product_id or self.tracking_id


class WishlistItemRead(SQLModel):
    id: str
    product_id: str
    created_at: datetime
    product: ProductRead | None = None


class WishlistStatus(SQLModel):
    """
    Membership of one product in the caller's wishlist.
    """

    product_id: str
    is_in_wishlist: bool
