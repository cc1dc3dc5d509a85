"""ORM model registry — importing this module registers every table on Base.metadata.

Alembic ``env.py`` imports ``Base`` from here (not from ``base.py``) so that
autogenerate sees all tables.  Application code can also do::

    from agrochain.models import Crop, Order, User
"""

# ── Base & Mixins ───────────────────────────────────────────────────────────
from agrochain.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# ── Marketplace models ──────────────────────────────────────────────────────
from agrochain.models.crops import Crop

# ── Enums ───────────────────────────────────────────────────────────────────
from agrochain.models.enums import (
    CropStatusEnum,
    OrderStatusEnum,
    PaymentStatusEnum,
    UserRoleEnum,
)
from agrochain.models.orders import Order

# ── Users ───────────────────────────────────────────────────────────────────
from agrochain.models.users import User

__all__ = [
    # Base & mixins
    "Base",
    # Marketplace
    "Crop",
    # Enums
    "CropStatusEnum",
    "Order",
    "OrderStatusEnum",
    "PaymentStatusEnum",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Users
    "User",
    "UserRoleEnum",
]
