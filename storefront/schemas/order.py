# storefront/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.cart import OwnerKind

OrderStatus = Literal["pending", "shipped", "delivered"]


class OrderCreate(SQLModel):
    """
    Checkout payload: who receives the order and where.

    Backend derives:
      - the owner (user or session) from the request
      - items and total_amount from the owner's cart
      - status = 'pending' and the order tracking id
    """

    model_config = ConfigDict(extra="forbid")

    customer_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=10, max_length=20)
    address: str = Field(min_length=10)
    city: str = Field(min_length=2)
    state: str = Field(min_length=2)
    pincode: str

    @field_validator("customer_name", "phone", "address", "city", "state", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("pincode")
    @classmethod
    def validate_pincode(cls, v: str) -> str:
        v = v.strip()
        if len(v) != 6 or not v.isdigit():
            raise ValueError("pincode must be 6 digits")
        return v


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: str
    tracking_id: str
    product_name: str
    quantity: int
    unit_price: float
    line_total: float


class OrderRead(SQLModel):
    """
    Order with its lines.
    """

    id: uuid.UUID
    order_tracking_id: str
    owner_kind: OwnerKind
    user_id: uuid.UUID | None
    customer_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    status: OrderStatus
    total_amount: float
    created_at: datetime
    shipped_at: datetime | None
    delivered_at: datetime | None
    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Staff payload to move an order along.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
