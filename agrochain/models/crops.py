"""Crop ORM model — a farmer's listed produce.

``quantity`` is whole kilograms still for sale and ``price`` the unit price
per kilogram.  ``status`` is derived from ``quantity``: a crop is ``Sold``
exactly when nothing is left, which the table enforces with a CHECK
constraint so no write path can break it.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from agrochain.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from agrochain.models.enums import CropStatusEnum, enum_column_type


class Crop(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Marketplace listing owned by a single farmer."""

    __tablename__ = "crops"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_crops_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_crops_price_non_negative"),
        CheckConstraint(
            "(quantity = 0 AND status = 'Sold') OR (quantity > 0 AND status = 'Available')",
            name="ck_crops_status_matches_quantity",
        ),
        Index("ix_crops_status_created", "status", "created_at"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    farmer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[CropStatusEnum] = mapped_column(
        enum_column_type(CropStatusEnum, "crop_status"),
        nullable=False,
        default=CropStatusEnum.available,
        server_default=CropStatusEnum.available.value,
    )

    def __repr__(self) -> str:
        return (
            f"<Crop id={self.id} name={self.name!r} "
            f"quantity={self.quantity} status={self.status}>"
        )
