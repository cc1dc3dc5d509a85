"""Order ORM model — a buyer's purchase from a crop listing.

``crop_id`` is a bare reference rather than a foreign key: deleting a
listing must leave its orders intact.  ``farmer_id`` is copied from the crop
when the order is created and never re-derived.  ``quantity`` and
``total_price`` are frozen at purchase time.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from agrochain.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from agrochain.models.enums import OrderStatusEnum, PaymentStatusEnum, enum_column_type


class Order(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Purchase record shared by a buyer and the crop's farmer."""

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
        CheckConstraint("total_price >= 0", name="ck_orders_total_price_non_negative"),
        Index("ix_orders_buyer_created", "buyer_id", "created_at"),
        Index("ix_orders_farmer_created", "farmer_id", "created_at"),
    )

    crop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    farmer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    status: Mapped[OrderStatusEnum] = mapped_column(
        enum_column_type(OrderStatusEnum, "order_status"),
        nullable=False,
        default=OrderStatusEnum.pending,
        server_default=OrderStatusEnum.pending.value,
    )
    payment_status: Mapped[PaymentStatusEnum] = mapped_column(
        enum_column_type(PaymentStatusEnum, "payment_status"),
        nullable=False,
        default=PaymentStatusEnum.pending,
        server_default=PaymentStatusEnum.pending.value,
    )

    @validates("quantity", "total_price")
    def _freeze_purchase_terms(self, key: str, value: object) -> object:
        current = self.__dict__.get(key)
        if current is not None and current != value:
            raise ValueError(f"order {key} is immutable once set")
        return value

    def __repr__(self) -> str:
        return (
            f"<Order id={self.id} crop={self.crop_id} quantity={self.quantity} "
            f"status={self.status} payment={self.payment_status}>"
        )
