"""Enum types for all ORM models.

Member names follow Python conventions; member values are what the API
returns and what the database stores (``Available``, ``Sold``, ...).
Columns are declared through :func:`enum_column_type` so SQLAlchemy
persists values rather than member names.
"""

from enum import StrEnum

from sqlalchemy import Enum


def enum_column_type(enum_cls: type[StrEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        create_constraint=False,
        native_enum=True,
        values_callable=lambda members: [member.value for member in members],
    )


# ── Marketplace enums ───────────────────────────────────────────────────────


class CropStatusEnum(StrEnum):
    """Listing availability; Sold exactly when quantity reaches zero."""

    available = "Available"
    sold = "Sold"


class OrderStatusEnum(StrEnum):
    """Fulfilment state, driven by the farmer."""

    pending = "Pending"
    completed = "Completed"
    cancelled = "Cancelled"


class PaymentStatusEnum(StrEnum):
    """Simulated payment outcome, driven by the buyer."""

    pending = "Pending"
    completed = "Completed"
    failed = "Failed"


# ── Auth enums ──────────────────────────────────────────────────────────────


class UserRoleEnum(StrEnum):
    """Marketplace side a user currently acts on."""

    farmer = "farmer"
    buyer = "buyer"
