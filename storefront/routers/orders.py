# storefront/routers/orders.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import get_owner_key, require_staff
from storefront.database import get_session
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import OwnerKey
from storefront.schemas.order import OrderCreate, OrderRead, OrderStatusUpdate
from storefront.services.cart_service import get_cart_service
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

service = OrderService(OrderRepository(), ProductRepository(), get_cart_service())


# -------- Customer-facing endpoints --------


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    owner: OwnerKey = Depends(get_owner_key),
):
    """
    Place an order from the caller's cart and empty the cart.

    Owner:
      - authenticated => user cart
      - anonymous => cart of the X-Session-Id header
    """
    return service.checkout(session, owner, payload)


@router.get("", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    owner: OwnerKey = Depends(get_owner_key),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the caller's orders, newest first.
    """
    return service.list_orders(session, owner, skip, limit)


@router.get("/{order_ref}", response_model=OrderRead)
def get_my_order(
    order_ref: str,
    session: Session = Depends(get_session),
    owner: OwnerKey = Depends(get_owner_key),
):
    """
    Get one of the caller's orders by tracking id (ORD-...) or id.
    """
    return service.get_order(session, owner, order_ref)


# -------- Staff endpoints --------


@router.patch(
    "/{order_ref}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_staff)],
)
def update_order_status(
    order_ref: str,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin or inventory role).

      pending -> shipped -> delivered
    """
    return service.update_status(session, order_ref, payload)
