"""User ORM model — marketplace accounts for JWT authentication.

Users authenticate via email/password and act as either a farmer (listing
crops, fulfilling orders) or a buyer (placing and paying for orders).  The
role can be switched at any time; ownership of existing crops and orders is
tied to the user id, not the role.
"""

from __future__ import annotations

from sqlalchemy import String, text
from sqlalchemy.orm import Mapped, mapped_column

from agrochain.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from agrochain.models.enums import UserRoleEnum, enum_column_type


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Marketplace user — authenticates via email/password (JWT)."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(
        String(128), nullable=False
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRoleEnum] = mapped_column(
        enum_column_type(UserRoleEnum, "user_role"),
        nullable=False,
        default=UserRoleEnum.buyer,
        server_default=UserRoleEnum.buyer.value,
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"
