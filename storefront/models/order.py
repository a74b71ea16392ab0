# storefront/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Order placed from a cart at checkout.

    Placed by whoever owned the cart: a signed-in user (owner_kind="user")
    or an anonymous session (owner_kind="session"). `user_id` is only set
    for the former.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    # ORD-XXXXX-XXXXX, shown to the customer
    order_tracking_id: str = Field(
        max_length=32,
        unique=True,
        index=True,
    )

    owner_kind: str = Field(max_length=16, index=True)
    owner_id: str = Field(max_length=128, index=True)

    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    customer_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str = Field(max_length=6)

    # pending | shipped | delivered
    status: str = Field(
        default="pending",
        index=True,
    )

    total_amount: float = Field(
        description="Sum of quantity * unit_price over the order lines",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None


class OrderItem(SQLModel, table=True):
    """
    Line of an order; name and price are copied from the catalog at checkout.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: str = Field(
        foreign_key="products.id",
        index=True,
    )

    product_name: str
    tracking_id: str

    quantity: int = Field(gt=0)

    unit_price: float = Field(
        description="Unit price at time of order",
    )
