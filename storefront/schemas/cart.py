# storefront/schemas/cart.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator
from sqlmodel import SQLModel, Field

OwnerKind = Literal["session", "user"]


class OwnerKey(BaseModel):
    """
    Identity a cart is grouped under: an anonymous session or a user.

    Frozen so it can key the cart cache and the per-owner locks.
    """

    model_config = ConfigDict(frozen=True)

    kind: OwnerKind
    value: str

    @classmethod
    def for_session(cls, session_id: str) -> "OwnerKey":
        return cls(kind="session", value=session_id)

    @classmethod
    def for_user(cls, user_id: object) -> "OwnerKey":
        return cls(kind="user", value=str(user_id))

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    The product can be referenced by internal id or by public tracking id.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str | None = None
    tracking_id: str | None = None
    quantity: int = Field(default=1, gt=0)

    @model_validator(mode="after")
    def require_product_reference(self) -> "CartItemCreate":
        if not self.product_id and not self.tracking_id:
            raise ValueError("product_id or tracking_id is required")
        return self


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    """

    quantity: int = Field(gt=0)


class MergeRequest(SQLModel):
    """
    Payload for merging an anonymous cart into the caller's cart.
    """

    session_id: str = Field(min_length=1)


class CartItemRead(SQLModel):
    """
    Read model for a single cart row.
    """

    id: str
    product_id: str
    quantity: int
    owner_kind: OwnerKind
    owner_key: str
    created_at: datetime
    updated_at: datetime


class CartLineRead(CartItemRead):
    """
    Cart row joined with its product, including line_total.
    """

    tracking_id: str
    product_name: str
    unit_price: float
    image_url: str | None = None
    line_total: float


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    owner_kind: OwnerKind
    owner_key: str
    items: list[CartLineRead]
    total_quantity: int
    total_price: float
