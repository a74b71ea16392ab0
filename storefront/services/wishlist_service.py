# storefront/services/wishlist_service.py
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from storefront.core.errors import NotFoundError, TransientError
from storefront.models.wishlist import WishlistItem
from storefront.repositories.wishlist_repo import WishlistRepository
from storefront.schemas.product import ProductRead
from storefront.schemas.wishlist import WishlistItemRead, WishlistStatus
from storefront.services.catalog_service import CatalogService


class WishlistService:
    """
    Business logic for a user's wishlist.

    Products may be referenced by internal id or tracking id; unknown
    products raise NotFoundError. Adding twice keeps a single row.
    """

    def __init__(self, repo: WishlistRepository, catalog: CatalogService):
        self.repo = repo
        self.catalog = catalog

    def _to_read(self, session: Session, item: WishlistItem) -> WishlistItemRead:
        product = self.catalog.repo.get_by_id(session, item.product_id)
        return WishlistItemRead(
            id=item.id,
            product_id=item.product_id,
            created_at=item.created_at,
            product=ProductRead.model_validate(product) if product else None,
        )

    def _insert(self, session: Session, user_id: uuid.UUID, product_id: str) -> WishlistItem:
        try:
            return self.repo.create(
                session, WishlistItem(user_id=user_id, product_id=product_id)
            )
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same pair.
            session.rollback()
            item = self.repo.get_item(session, user_id, product_id)
            if item is None:
                raise TransientError("Wishlist storage unavailable, please retry") from exc
            return item

    def list_items(self, session: Session, user_id: uuid.UUID) -> list[WishlistItemRead]:
        return [
            self._to_read(session, it) for it in self.repo.list_for_user(session, user_id)
        ]

    def add(self, session: Session, user_id: uuid.UUID, product_ref: str) -> WishlistItemRead:
        product = self.catalog.get_product(session, product_ref)
        item = self.repo.get_item(session, user_id, product.id)
        if item is None:
            item = self._insert(session, user_id, product.id)
        return self._to_read(session, item)

    def remove(self, session: Session, user_id: uuid.UUID, product_ref: str) -> None:
        """
        Raises:
            NotFoundError: if the product is unknown or not in the wishlist.
        """
        product = self.catalog.get_product(session, product_ref)
        item = self.repo.get_item(session, user_id, product.id)
        if item is None:
            raise NotFoundError("Wishlist item not found")
        self.repo.delete(session, item)

    def contains(self, session: Session, user_id: uuid.UUID, product_ref: str) -> WishlistStatus:
        product = self.catalog.get_product(session, product_ref)
        item = self.repo.get_item(session, user_id, product.id)
        return WishlistStatus(product_id=product.id, is_in_wishlist=item is not None)

    def toggle(self, session: Session, user_id: uuid.UUID, product_ref: str) -> WishlistStatus:
        """
        Add the product if absent, remove it if present.
        Returns the membership after the change.
        """
        product = self.catalog.get_product(session, product_ref)
        item = self.repo.get_item(session, user_id, product.id)
        if item is None:
            self._insert(session, user_id, product.id)
            return WishlistStatus(product_id=product.id, is_in_wishlist=True)
        self.repo.delete(session, item)
        return WishlistStatus(product_id=product.id, is_in_wishlist=False)
