# storefront/routers/wishlist.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.wishlist_repo import WishlistRepository
from storefront.schemas.wishlist import (
    WishlistItemCreate,
    WishlistItemRead,
    WishlistStatus,
)
from storefront.services.catalog_service import CatalogService
from storefront.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])

service = WishlistService(WishlistRepository(), CatalogService(ProductRepository()))


@router.get("", response_model=list[WishlistItemRead])
def list_wishlist(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    The caller's saved products, newest first.
    """
    return service.list_items(session, current_user.id)


@router.post("", response_model=WishlistItemRead, status_code=status.HTTP_201_CREATED)
def add_to_wishlist(
    payload: WishlistItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.add(session, current_user.id, payload.product_ref)


@router.post("/toggle", response_model=WishlistStatus)
def toggle_wishlist(
    payload: WishlistItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Save the product if it is not saved yet, otherwise remove it.
    """
    return service.toggle(session, current_user.id, payload.product_ref)


@router.get("/check/{product_ref}", response_model=WishlistStatus)
def check_wishlist(
    product_ref: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.contains(session, current_user.id, product_ref)


@router.delete("/{product_ref}", status_code=status.HTTP_204_NO_CONTENT)
def remove_from_wishlist(
    product_ref: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    service.remove(session, current_user.id, product_ref)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
