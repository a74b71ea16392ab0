# storefront/services/catalog_service.py
import uuid

from sqlmodel import Session

from storefront.core.errors import NotFoundError, ValidationError
from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product import ProductCreate


class CatalogService:
    """
    Business logic for the product catalog.

    Responsibilities:
      - product lookup by id or tracking id
      - tracking id generation & uniqueness
      - product resolution shared by the wishlist
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Helpers -----

    def _new_tracking_id(self, session: Session) -> str:
        """
        Generate a short public id like "SAR-1A2B3C4D", retrying on collision.
        """
        while True:
            candidate = f"SAR-{uuid.uuid4().hex[:8].upper()}"
            if self.repo.get_by_tracking_id(session, candidate) is None:
                return candidate

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[Product]:
        return self.repo.list(session, skip=skip, limit=limit, only_active=only_active)

    def get_product(self, session: Session, ref: str) -> Product:
        """
        Resolve a product by internal id or tracking id.

        Raises:
            NotFoundError: if neither matches.
        """
        product = self.repo.get_by_ref(session, ref)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        if payload.tracking_id:
            if self.repo.get_by_tracking_id(session, payload.tracking_id):
                raise ValidationError("Tracking id already in use")
            tracking_id = payload.tracking_id
        else:
            tracking_id = self._new_tracking_id(session)

        product = Product(
            **payload.model_dump(exclude={"tracking_id"}),
            tracking_id=tracking_id,
        )
        return self.repo.create(session, product)
