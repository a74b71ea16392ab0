# storefront/routers/auth.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import get_session_id
from storefront.core.supabase_client import supabase_public
from storefront.database import get_session
from storefront.schemas.user import AuthResponse, LoginRequest, RegisterRequest
from storefront.services.auth_service import AuthService
from storefront.services.cart_service import get_cart_service

router = APIRouter(prefix="/auth", tags=["Auth"])

service = AuthService(supabase_public, get_cart_service())


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
    session_id: str | None = Depends(get_session_id),
):
    """
    Sign in with email/password.

    When the request carries X-Session-Id, the anonymous cart is merged
    into the user's cart before responding.
    """
    return service.login(session, payload, session_id)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    session: Session = Depends(get_session),
    session_id: str | None = Depends(get_session_id),
):
    """
    Create an account. Same cart merge behaviour as /login.
    """
    return service.register(session, payload, session_id)
