# storefront/repositories/order_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.order import Order, OrderItem
from storefront.schemas.cart import OwnerKey


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; checkout writes the order, its lines, the stock
        and the cart in one transaction. The service commits.
    """

    # ---- Orders ----

    def list_for_owner(
        self,
        session: Session,
        owner: OwnerKey,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.owner_kind == owner.kind, Order.owner_id == owner.value)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_by_tracking_id(self, session: Session, tracking_id: str) -> Order | None:
        stmt = select(Order).where(Order.order_tracking_id == tracking_id)
        return session.exec(stmt).first()

    def get_by_ref(self, session: Session, ref: str) -> Order | None:
        """Look an order up by tracking id (ORD-...) or by uuid."""
        if ref.startswith("ORD-"):
            return self.get_by_tracking_id(session, ref)
        try:
            return self.get_by_id(session, uuid.UUID(ref))
        except ValueError:
            return None

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items
