# storefront/core/auth.py
import uuid
from typing import Any

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session, select

from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.user import User
from storefront.schemas.cart import OwnerKey
from storefront.services.cart_service import resolve_owner_key

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so anonymous shoppers can use their session cart.
bearer_scheme = HTTPBearer(auto_error=False)

SESSION_HEADER = "X-Session-Id"


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def provision_user(
    session: Session,
    user_id: uuid.UUID,
    email: str,
    name: str | None = None,
) -> User:
    """
    Return the profile row for a Supabase identity, creating it if missing.
    Default role = "user" (staff roles are assigned manually).
    """
    user = session.exec(select(User).where(User.id == user_id)).first()
    if user is None:
        user = User(
            id=user_id,
            email=email,
            name=(name or default_name_from_email(email))[:50],
            role="user",
        )
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from a Supabase JWT.

    Flow:
      1. If no Authorization header => anonymous => return None.
      2. Decode JWT => extract 'sub' (auth user id) and 'email'.
      3. Convert 'sub' to UUID to match User.id type.
      4. Find or auto-provision the profile in public.users.

    Raises:
        HTTPException(401): if token is malformed or missing required claims.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    return provision_user(session, sub_uuid, email)


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    Raises:
        HTTPException(401): if user is None.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_staff(user: User = Depends(require_auth)) -> User:
    """
    Enforce a staff role (store admin or inventory manager).

    Raises:
        HTTPException(403): for shoppers.
    """
    if not user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required",
        )
    return user


def get_session_id(
    session_id: str | None = Header(default=None, alias=SESSION_HEADER),
) -> str | None:
    """Anonymous session token generated and stored by the client."""
    if session_id is not None:
        session_id = session_id.strip() or None
    return session_id


def get_owner_key(
    user: User | None = Depends(get_current_user),
    session_id: str | None = Depends(get_session_id),
) -> OwnerKey:
    """
    Owner of the cart this request acts on, resolved fresh per request.

    Raises:
        ValidationError(400): anonymous request without a session id.
    """
    return resolve_owner_key(user.id if user else None, session_id)
