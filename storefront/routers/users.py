# storefront/routers/users.py
from fastapi import APIRouter, Depends

from storefront.core.auth import require_auth
from storefront.models.user import User
from storefront.schemas.user import UserRead

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.

    Auth:
      - Requires valid Supabase JWT.
    """
    return current_user
