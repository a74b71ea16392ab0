# storefront/services/order_service.py
import logging
import secrets
import string
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import NotFoundError, ValidationError
from storefront.models.cart import CartItem
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import OwnerKey
from storefront.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
)
from storefront.services.cart_service import CartService

logger = logging.getLogger(__name__)

_TRACKING_ALPHABET = string.ascii_uppercase + string.digits

# Forward-only lifecycle, with the timestamp each step stamps
STATUS_FLOW: dict[str, set[str]] = {
    "pending": {"shipped"},
    "shipped": {"delivered"},
    "delivered": set(),
}
STATUS_TIMESTAMPS = {"shipped": "shipped_at", "delivered": "delivered_at"}


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create an order from the caller's cart (user or session)
      - Validate cart items against products (exists, active, stock)
      - Deduct product stock
      - Empty the cart through CartService, so its cache follows
      - Owner-scoped reads and staff status updates
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        cart_service: CartService,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.cart_service = cart_service

    # -------- Helpers --------

    def _new_tracking_id(self, session: Session) -> str:
        """
        Generate an id like "ORD-7K2QX-M9ABC", retrying on collision.
        """
        while True:
            part1 = "".join(secrets.choice(_TRACKING_ALPHABET) for _ in range(5))
            part2 = "".join(secrets.choice(_TRACKING_ALPHABET) for _ in range(5))
            candidate = f"ORD-{part1}-{part2}"
            if self.order_repo.get_by_tracking_id(session, candidate) is None:
                return candidate

    def _check_cart(
        self,
        cart_items: list[CartItem],
        products: dict[str, Product],
    ) -> list[dict[str, str]]:
        errors: list[dict[str, str]] = []
        for ci in cart_items:
            product = products.get(ci.product_id)
            if product is None:
                reason = "Product not found"
            elif not product.is_active:
                reason = "Product is inactive"
            elif ci.quantity > product.in_stock:
                reason = (
                    f"Insufficient stock (have {product.in_stock}, "
                    f"requested {ci.quantity})"
                )
            else:
                continue
            errors.append({"product_id": ci.product_id, "reason": reason})
        return errors

    def _to_read(self, session: Session, order: Order) -> OrderRead:
        items = [
            OrderItemRead(
                id=it.id,
                product_id=it.product_id,
                tracking_id=it.tracking_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                line_total=it.quantity * it.unit_price,
            )
            for it in self.order_repo.list_items_for_order(session, order.id)
        ]
        return OrderRead.model_validate(order, update={"items": items})

    def _get_owned(self, session: Session, owner: OwnerKey, order_ref: str) -> Order:
        order = self.order_repo.get_by_ref(session, order_ref)
        if order is None or (order.owner_kind, order.owner_id) != (owner.kind, owner.value):
            raise NotFoundError("Order not found")
        return order

    # -------- Customer-facing operations --------

    def checkout(
        self,
        session: Session,
        owner: OwnerKey,
        payload: OrderCreate,
    ) -> OrderRead:
        """
        Convert the owner's cart into an Order.

        Steps:
          1. Load cart items (owner locked); error if empty.
          2. Validate each item: product exists, is active, has stock.
          3. Create the Order (status='pending') and its lines with
             the catalog name and price.
          4. Deduct stock; a product sold out meanwhile fails the order.
          5. Empty the cart and commit everything at once.

        Any failure rolls back the whole checkout and keeps the cart.
        """
        with self.cart_service.consume_cart(session, owner) as cart_items:
            if not cart_items:
                raise ValidationError("Cart is empty")

            products = self.product_repo.get_many(
                session, {ci.product_id for ci in cart_items}
            )
            errors = self._check_cart(cart_items, products)
            if errors:
                raise ValidationError(
                    {"message": "Cart validation failed", "items": errors}
                )

            total_amount = sum(
                ci.quantity * products[ci.product_id].price for ci in cart_items
            )
            order = self.order_repo.create_order(
                session,
                Order(
                    order_tracking_id=self._new_tracking_id(session),
                    owner_kind=owner.kind,
                    owner_id=owner.value,
                    user_id=uuid.UUID(owner.value) if owner.kind == "user" else None,
                    status="pending",
                    total_amount=total_amount,
                    **payload.model_dump(),
                ),
            )
            self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=ci.product_id,
                        product_name=products[ci.product_id].name,
                        tracking_id=products[ci.product_id].tracking_id,
                        quantity=ci.quantity,
                        unit_price=products[ci.product_id].price,
                    )
                    for ci in cart_items
                ],
            )

            for ci in cart_items:
                if not self.product_repo.decrement_stock(session, ci.product_id, ci.quantity):
                    raise ValidationError(
                        {
                            "message": "Cart validation failed",
                            "items": [
                                {"product_id": ci.product_id, "reason": "Insufficient stock"}
                            ],
                        }
                    )

        logger.info(
            "Order %s placed by %s: %d lines, total %.2f",
            order.order_tracking_id,
            owner,
            len(cart_items),
            order.total_amount,
        )
        return self._to_read(session, order)

    def list_orders(
        self,
        session: Session,
        owner: OwnerKey,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        Orders placed by the owner, newest first.
        """
        return [
            self._to_read(session, o)
            for o in self.order_repo.list_for_owner(session, owner, skip, limit)
        ]

    def get_order(self, session: Session, owner: OwnerKey, order_ref: str) -> OrderRead:
        """
        Get one of the owner's orders by tracking id or id.

        Orders of other owners are reported as not found.
        """
        return self._to_read(session, self._get_owned(session, owner, order_ref))

    # -------- Staff operations --------

    def update_status(
        self,
        session: Session,
        order_ref: str,
        payload: OrderStatusUpdate,
    ) -> OrderRead:
        """
        Staff-only status update with a forward-only state machine:

          pending -> shipped -> delivered

        Setting the current status again is a no-op; anything else is 400.
        """
        order = self.order_repo.get_by_ref(session, order_ref)
        if order is None:
            raise NotFoundError("Order not found")

        current = order.status
        new = payload.status

        if current != new:
            if new not in STATUS_FLOW.get(current, set()):
                raise ValidationError(f"Invalid status transition: {current} -> {new}")
            order.status = new
            setattr(order, STATUS_TIMESTAMPS[new], datetime.now(timezone.utc))
            self.order_repo.update_order(session, order)
            session.commit()
            session.refresh(order)

        return self._to_read(session, order)
