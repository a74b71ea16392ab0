# storefront/schemas/user.py
import uuid
from datetime import datetime

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from storefront.models.user import Role
from storefront.schemas.cart import CartItemRead


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    email: EmailStr
    name: str
    role: Role
    created_at: datetime


class LoginRequest(SQLModel):
    """
    Email/password credentials forwarded to Supabase Auth.
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=6)


class RegisterRequest(LoginRequest):
    """
    Sign-up payload. `name` defaults to the local part of the email.
    """

    name: str | None = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class AuthResponse(SQLModel):
    """
    Result of a login/registration.

    `cart` is the caller's cart after the anonymous session cart was merged.
    `cart_merged` is False when no session id was sent or the merge failed;
    the client may retry with POST /cart/merge-on-login.
    """

    access_token: str
    token_type: str = "bearer"
    user: UserRead
    cart: list[CartItemRead] = []
    cart_merged: bool = False
