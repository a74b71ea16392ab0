# storefront/services/cart_service.py
import logging
import uuid
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.core.redis_client import get_redis
from storefront.core.errors import (
    CartError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from storefront.models.cart import CartItem
from storefront.models.product import Product
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import (
    CartItemRead,
    CartLineRead,
    CartSummary,
    OwnerKey,
)
from storefront.services.cart_cache import CartCache
from storefront.services.owner_locks import OwnerLocks

logger = logging.getLogger(__name__)


def resolve_owner_key(
    user_id: uuid.UUID | str | None,
    session_id: str | None,
) -> OwnerKey:
    """
    Decide which cart applies to the caller right now.

    Authenticated callers always use their user cart; anonymous callers
    use the cart of the session id they send. Must be called per request
    since identity changes on login/logout.

    Raises:
        ValidationError: if the caller has neither identity.
    """
    if user_id:
        return OwnerKey.for_user(user_id)
    if session_id:
        return OwnerKey.for_session(session_id)
    raise ValidationError("Session ID is required")


def owner_of(item: CartItem) -> OwnerKey:
    return OwnerKey(kind=item.owner_kind, value=item.owner_id)


def to_read(item: CartItem) -> CartItemRead:
    return CartItemRead(
        id=item.id,
        product_id=item.product_id,
        quantity=item.quantity,
        owner_kind=item.owner_kind,
        owner_key=item.owner_id,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _require_positive(quantity: int) -> None:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")


class CartService:
    """
    Cart identity & merge manager.

    Responsibilities:
      - serve the cart of a resolved owner (session or user)
      - add / update / remove items, one row per (owner, product)
      - validate products against the catalog
      - merge an anonymous session cart into the user cart at login
      - keep the read cache coherent: every mutation invalidates its owner

    Storage failures are rolled back and raised as TransientError;
    every operation is safe to retry.
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        cache: CartCache,
        locks: OwnerLocks | None = None,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.cache = cache
        self.locks = locks or OwnerLocks()

    # ---- internal helpers ----

    @contextmanager
    def _storage_errors(self, session: Session, *owners: OwnerKey):
        try:
            yield
        except (DBAPIError, StaleDataError) as exc:
            session.rollback()
            logger.warning(
                "Cart storage failure for %s: %s",
                ", ".join(str(o) for o in owners),
                exc.__class__.__name__,
            )
            raise TransientError("Cart storage unavailable, please retry") from exc

    def _get_valid_product(
        self,
        session: Session,
        product_id: str | None = None,
        tracking_id: str | None = None,
    ) -> Product:
        product = None
        if product_id:
            product = self.product_repo.get_by_id(session, product_id)
        elif tracking_id:
            product = self.product_repo.get_by_tracking_id(session, tracking_id)

        if product is None:
            raise ValidationError("Product not found")
        if not product.is_active:
            raise ValidationError("Product is inactive")
        if product.in_stock == 0:
            raise ValidationError("Product is out of stock")
        return product

    def _load(self, session: Session, owner: OwnerKey) -> list[CartItemRead]:
        return [to_read(it) for it in self.cart_repo.list_for_owner(session, owner)]

    # ---- reads ----

    def get_cart(self, session: Session, owner: OwnerKey) -> list[CartItemRead]:
        """
        Current items for the owner.

        An owner that never added anything simply has an empty cart.
        """
        with self.locks.hold(owner), self._storage_errors(session, owner):
            return self.cache.get_or_load(owner, lambda: self._load(session, owner))

    def get_cart_summary(self, session: Session, owner: OwnerKey) -> CartSummary:
        """
        Return full cart summary:
          - items joined with product name/price and line_total
          - total_quantity
          - total_price

        Items whose product no longer exists are left out.
        """
        items = self.get_cart(session, owner)
        with self._storage_errors(session, owner):
            products = self.product_repo.get_many(
                session, {it.product_id for it in items}
            )

        lines: list[CartLineRead] = []
        total_qty = 0
        total_price = 0.0

        for it in items:
            product = products.get(it.product_id)
            if product is None:
                continue
            line_total = it.quantity * product.price
            total_qty += it.quantity
            total_price += line_total
            lines.append(
                CartLineRead(
                    **it.model_dump(),
                    tracking_id=product.tracking_id,
                    product_name=product.name,
                    unit_price=product.price,
                    image_url=product.image_url,
                    line_total=line_total,
                )
            )

        return CartSummary(
            owner_kind=owner.kind,
            owner_key=owner.value,
            items=lines,
            total_quantity=total_qty,
            total_price=total_price,
        )

    # ---- mutations ----

    def add_item(
        self,
        session: Session,
        owner: OwnerKey,
        product_id: str | None,
        quantity: int,
        tracking_id: str | None = None,
    ) -> CartItemRead:
        """
        Add `quantity` units of a product to the owner's cart.

        Rules:
          - quantity >= 1
          - product must exist, be active and in stock
          - an existing row for the same product is incremented,
            never duplicated
        """
        _require_positive(quantity)

        with self.locks.hold(owner), self._storage_errors(session, owner):
            product = self._get_valid_product(session, product_id, tracking_id)
            existing = self.cart_repo.get_item(session, owner, product.id)
            new_qty = quantity if existing is None else existing.quantity + quantity
            item = self.cart_repo.upsert(session, owner, product.id, new_qty)
            session.commit()
            session.refresh(item)
            self.cache.invalidate(owner)
            return to_read(item)

    def _get_owned_item(
        self, session: Session, owner: OwnerKey, cart_item_id: str
    ) -> CartItem | None:
        # Rows of other owners are indistinguishable from missing ones.
        item = self.cart_repo.get_by_id(session, cart_item_id)
        if item is None or owner_of(item) != owner:
            return None
        return item

    def update_quantity(
        self,
        session: Session,
        owner: OwnerKey,
        cart_item_id: str,
        quantity: int,
    ) -> CartItemRead:
        """
        Overwrite the quantity of one of the owner's cart rows.

        Zero or negative quantities are rejected; callers remove instead.

        Raises:
            NotFoundError: if the row does not exist or belongs to
                another owner.
        """
        _require_positive(quantity)

        with self.locks.hold(owner), self._storage_errors(session, owner):
            item = self._get_owned_item(session, owner, cart_item_id)
            if item is None:
                raise NotFoundError("Cart item not found")
            self.cart_repo.set_quantity(session, item, quantity)
            session.commit()
            session.refresh(item)
            self.cache.invalidate(owner)
            return to_read(item)

    def remove_item(self, session: Session, owner: OwnerKey, cart_item_id: str) -> None:
        """
        Delete one of the owner's cart rows.

        Unknown ids, and ids of other owners' rows, are a no-op.
        """
        with self.locks.hold(owner), self._storage_errors(session, owner):
            item = self._get_owned_item(session, owner, cart_item_id)
            if item is None:
                return
            self.cart_repo.delete(session, item)
            session.commit()
            self.cache.invalidate(owner)

    @contextmanager
    def consume_cart(self, session: Session, owner: OwnerKey):
        """
        Hand the owner's cart rows to a caller that turns them into
        something else (an order), then empty the cart.

        The owner stays locked for the whole block. The caller's writes,
        the cart deletion and the commit form one transaction; an error
        raised inside the block rolls everything back and leaves the
        cart intact.
        """
        with self.locks.hold(owner):
            try:
                with self._storage_errors(session, owner):
                    try:
                        yield self.cart_repo.list_for_owner(session, owner)
                    except CartError:
                        session.rollback()
                        raise
                    self.cart_repo.clear_owner(session, owner)
                    session.commit()
            finally:
                self.cache.invalidate(owner)

    def clear_cart(self, session: Session, owner: OwnerKey) -> None:
        """
        Delete every row of the owner's cart.
        """
        with self.locks.hold(owner), self._storage_errors(session, owner):
            self.cart_repo.clear_owner(session, owner)
            session.commit()
            self.cache.invalidate(owner)

    def merge_on_login(
        self,
        session: Session,
        session_id: str,
        user_id: uuid.UUID | str,
    ) -> list[CartItemRead]:
        """
        Fold the anonymous session cart into the user cart.

        Steps:
          1. Load session items.
          2. Load user items.
          3. For each session item: add its quantity to the user's row for
             the same product and delete it, or re-key it to the user.
          4. Commit once; afterwards no row is left under the session.
          5. Return the full user cart.

        The whole merge is a single transaction, so a failure leaves both
        carts as they were and a retry starts again from current state.
        Repeating the call is a no-op because the session cart is empty.
        """
        if not session_id:
            raise ValidationError("Session ID is required")

        source = OwnerKey.for_session(session_id)
        target = OwnerKey.for_user(user_id)

        with self.locks.hold(source, target):
            try:
                with self._storage_errors(session, source, target):
                    session_items = self.cart_repo.list_for_owner(session, source)
                    if session_items:
                        self._merge_rows(session, session_items, target)
                        session.commit()
                    return self._load(session, target)
            finally:
                self.cache.invalidate(source, target)

    def _merge_rows(
        self,
        session: Session,
        session_items: list[CartItem],
        target: OwnerKey,
    ) -> None:
        user_items = {
            it.product_id: it for it in self.cart_repo.list_for_owner(session, target)
        }
        moved = combined = 0

        for src in session_items:
            dest = user_items.get(src.product_id)
            if dest is None:
                user_items[src.product_id] = self.cart_repo.rekey(session, src, target)
                moved += 1
            else:
                self.cart_repo.set_quantity(session, dest, dest.quantity + src.quantity)
                self.cart_repo.delete(session, src)
                combined += 1

        logger.info(
            "Merged cart into %s: %d moved, %d combined", target, moved, combined
        )


@lru_cache
def get_cart_service() -> CartService:
    """
    Process-wide CartService.

    Shared so every router sees the same owner locks; the cache lives in
    Redis and is shared with the other worker processes.
    """
    settings = get_settings()
    return CartService(
        CartRepository(),
        ProductRepository(),
        CartCache(get_redis(), ttl_seconds=settings.CART_CACHE_TTL_SECONDS),
    )
