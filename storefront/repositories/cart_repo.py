# storefront/repositories/cart_repo.py
from datetime import datetime, timezone

from sqlmodel import Session, select

from storefront.models.cart import CartItem
from storefront.schemas.cart import OwnerKey


def _owner_filter(owner: OwnerKey):
    return (CartItem.owner_kind == owner.kind, CartItem.owner_id == owner.value)


class CartRepository:
    """
    Data access layer for cart_items (the cart store).

    NOTE:
      - No commits here; a merge touches two owners in one transaction.
        The service is responsible for calling session.commit().
    """

    # ---- Queries ----

    def list_for_owner(self, session: Session, owner: OwnerKey) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(*_owner_filter(owner))
            .order_by(CartItem.created_at, CartItem.id)
        )
        return list(session.exec(stmt).all())

    def get_item(
        self, session: Session, owner: OwnerKey, product_id: str
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            *_owner_filter(owner), CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    def get_by_id(self, session: Session, item_id: str) -> CartItem | None:
        # Always hit the database: another request may have deleted the row.
        return session.get(CartItem, item_id, populate_existing=True)

    # ---- Writes ----

    def upsert(
        self,
        session: Session,
        owner: OwnerKey,
        product_id: str,
        quantity: int,
    ) -> CartItem:
        """
        Set the quantity of (owner, product_id), creating the row if missing.
        """
        item = self.get_item(session, owner, product_id)
        if item is None:
            item = CartItem(
                product_id=product_id,
                quantity=quantity,
                owner_kind=owner.kind,
                owner_id=owner.value,
            )
        else:
            item.quantity = quantity
            item.updated_at = datetime.now(timezone.utc)
        session.add(item)
        session.flush()
        return item

    def set_quantity(self, session: Session, item: CartItem, quantity: int) -> CartItem:
        item.quantity = quantity
        item.updated_at = datetime.now(timezone.utc)
        session.add(item)
        session.flush()
        return item

    def rekey(self, session: Session, item: CartItem, owner: OwnerKey) -> CartItem:
        """Move a row to another owner, keeping its id."""
        item.owner_kind = owner.kind
        item.owner_id = owner.value
        item.updated_at = datetime.now(timezone.utc)
        session.add(item)
        session.flush()
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()

    def clear_owner(self, session: Session, owner: OwnerKey) -> int:
        rows = self.list_for_owner(session, owner)
        for row in rows:
            session.delete(row)
        session.flush()
        return len(rows)
