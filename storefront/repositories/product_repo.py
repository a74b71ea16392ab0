# storefront/repositories/product_repo.py
from sqlalchemy import update
from sqlmodel import Session, select

from storefront.models.product import Product


class ProductRepository:
    """
    Data access layer for Product (the product catalog).

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, product_id: str) -> Product | None:
        return session.get(Product, product_id)

    def get_by_tracking_id(self, session: Session, tracking_id: str) -> Product | None:
        stmt = select(Product).where(Product.tracking_id == tracking_id)
        return session.exec(stmt).first()

    def get_by_ref(self, session: Session, ref: str) -> Product | None:
        """Look a product up by internal id, falling back to tracking id."""
        return self.get_by_id(session, ref) or self.get_by_tracking_id(session, ref)

    def get_many(self, session: Session, product_ids: set[str]) -> dict[str, Product]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(list(product_ids)))
        return {p.id: p for p in session.exec(stmt).all()}

    def list(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[Product]:
        stmt = select(Product)
        if only_active:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Product.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def decrement_stock(self, session: Session, product_id: str, quantity: int) -> bool:
        """
        Take `quantity` units out of stock in a single guarded UPDATE.

        Returns False (and changes nothing) when fewer units are left,
        so two checkouts can never oversell a product.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.in_stock >= quantity)
            .values(in_stock=Product.in_stock - quantity)
        )
        result = session.execute(stmt)
        return result.rowcount == 1
