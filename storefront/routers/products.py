# storefront/routers/products.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import require_staff
from storefront.database import get_session
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product import ProductCreate, ProductRead
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["Products"])

service = CatalogService(ProductRepository())


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    only_active: bool = True,
):
    """
    List products.

    - Public endpoint.
    - `only_active=True` hides inactive products by default.
    """
    return service.list_products(
        session, skip=skip, limit=limit, only_active=only_active
    )


@router.get("/{product_ref}", response_model=ProductRead)
def get_product(
    product_ref: str,
    session: Session = Depends(get_session),
):
    """
    Get a single product by id or tracking id.
    """
    return service.get_product(session, product_ref)


# -------- Staff endpoints --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_staff)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a product (store admin / inventory manager).
    """
    return service.create_product(session, payload)
