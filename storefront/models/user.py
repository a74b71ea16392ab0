# storefront/models/user.py
import uuid
from datetime import datetime, timezone
from typing import Literal

from sqlalchemy import Column, String
from sqlmodel import SQLModel, Field

# Anonymous shoppers carry a session id instead of a row here.
Role = Literal["user", "admin", "inventory"]
STAFF_ROLES: frozenset[str] = frozenset({"admin", "inventory"})


class User(SQLModel, table=True):
    """
    Storefront account mirrored from Supabase Auth.

    Roles:
      - "user": shopper; owns a user cart and a wishlist
      - "admin": store admin; manages the catalog
      - "inventory": inventory manager; manages the catalog

    Staff roles are granted by hand in the database; sign-up always
    creates a shopper. Passwords never reach this table.
    """

    __tablename__ = "users"

    # Same UUID as auth.users.id / the JWT "sub" claim
    id: uuid.UUID = Field(primary_key=True, index=True)

    email: str = Field(unique=True, index=True)

    name: str = Field(
        max_length=50,
        description="Display name; local part of the email unless given at sign-up",
    )

    role: Role = Field(
        default="user",
        sa_column=Column(String(20), nullable=False, index=True, default="user"),
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
