# storefront/routers/cart.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from storefront.core.auth import get_owner_key, require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.schemas.cart import (
    CartItemCreate,
    CartItemRead,
    CartItemUpdate,
    CartSummary,
    MergeRequest,
    OwnerKey,
)
from storefront.services.cart_service import get_cart_service

router = APIRouter(prefix="/cart", tags=["Cart"])

service = get_cart_service()


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    owner: OwnerKey = Depends(get_owner_key),
):
    """
    Get the caller's cart summary.

    Owner:
      - authenticated => user cart
      - anonymous => cart of the X-Session-Id header
    """
    return service.get_cart_summary(session, owner)


@router.post("", response_model=CartItemRead, status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    owner: OwnerKey = Depends(get_owner_key),
):
    """
    Add a product to the caller's cart.

    Adding a product already in the cart increases its quantity.
    """
    return service.add_item(
        session,
        owner,
        product_id=payload.product_id,
        quantity=payload.quantity,
        tracking_id=payload.tracking_id,
    )


@router.post("/merge-on-login", response_model=list[CartItemRead])
def merge_on_login(
    payload: MergeRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Merge the anonymous session cart into the authenticated user's cart.

    Safe to call more than once; returns the full user cart.
    """
    return service.merge_on_login(session, payload.session_id, current_user.id)


@router.patch("/{item_id}", response_model=CartItemRead)
def update_cart_item(
    item_id: str,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    owner: OwnerKey = Depends(get_owner_key),
):
    """
    Set the quantity of a row in the caller's cart.

    Rows of other carts are reported as not found.
    """
    return service.update_quantity(session, owner, item_id, payload.quantity)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_cart_item(
    item_id: str,
    session: Session = Depends(get_session),
    owner: OwnerKey = Depends(get_owner_key),
):
    """
    Remove a row from the caller's cart. Unknown ids are ignored.
    """
    service.remove_item(session, owner, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(
    session: Session = Depends(get_session),
    owner: OwnerKey = Depends(get_owner_key),
):
    """
    Clear the caller's cart.
    """
    service.clear_cart(session, owner)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
