# storefront/services/auth_service.py
import logging
import uuid
from collections.abc import Callable

from fastapi import HTTPException, status
from sqlmodel import Session
from supabase import AuthError, Client

from storefront.core.auth import provision_user
from storefront.core.errors import TransientError, ValidationError
from storefront.models.user import User
from storefront.schemas.cart import CartItemRead
from storefront.schemas.user import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserRead,
)
from storefront.services.cart_service import CartService

logger = logging.getLogger(__name__)


class AuthService:
    """
    Login / registration against Supabase Auth.

    Supabase issues the access token; we only mirror the profile row and,
    right after a successful sign-in, merge the caller's anonymous cart
    into their user cart. The merge runs before any cart is returned.
    """

    def __init__(self, client_factory: Callable[[], Client], cart_service: CartService):
        self.client_factory = client_factory
        self.cart_service = cart_service

    # ---- internal helpers ----

    def _finish(
        self,
        session: Session,
        auth_response,
        name: str | None,
        session_id: str | None,
    ) -> AuthResponse:
        if auth_response.session is None:
            # Project requires email confirmation before the first sign-in
            raise ValidationError("Please confirm your email before logging in")

        auth_user = auth_response.user
        user = provision_user(session, uuid.UUID(str(auth_user.id)), auth_user.email, name)
        cart, merged = self._merge_cart(session, user, session_id)

        return AuthResponse(
            access_token=auth_response.session.access_token,
            user=UserRead.model_validate(user),
            cart=cart,
            cart_merged=merged,
        )

    def _merge_cart(
        self,
        session: Session,
        user: User,
        session_id: str | None,
    ) -> tuple[list[CartItemRead], bool]:
        """
        A failed merge does not fail the login; the client can retry it.
        """
        if not session_id:
            return [], False
        try:
            return self.cart_service.merge_on_login(session, session_id, user.id), True
        except TransientError:
            logger.warning("Cart merge on login failed for user %s", user.id)
            return [], False

    # ---- public operations ----

    def login(
        self,
        session: Session,
        payload: LoginRequest,
        session_id: str | None,
    ) -> AuthResponse:
        try:
            auth_response = self.client_factory().auth.sign_in_with_password(
                {"email": payload.email, "password": payload.password}
            )
        except AuthError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )
        return self._finish(session, auth_response, None, session_id)

    def register(
        self,
        session: Session,
        payload: RegisterRequest,
        session_id: str | None,
    ) -> AuthResponse:
        try:
            auth_response = self.client_factory().auth.sign_up(
                {"email": payload.email, "password": payload.password}
            )
        except AuthError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Registration failed: {exc}",
            )
        return self._finish(session, auth_response, payload.name, session_id)
