"""initial_marketplace_schema

Revision ID: 3c9e1f7a2b45
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3c9e1f7a2b45"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUM_USER_ROLE = postgresql.ENUM("farmer", "buyer", name="user_role", create_type=False)
ENUM_CROP_STATUS = postgresql.ENUM("Available", "Sold", name="crop_status", create_type=False)
ENUM_ORDER_STATUS = postgresql.ENUM(
	"Pending", "Completed", "Cancelled", name="order_status", create_type=False
)
ENUM_PAYMENT_STATUS = postgresql.ENUM(
	"Pending", "Completed", "Failed", name="payment_status", create_type=False
)

_ENUMS = (ENUM_USER_ROLE, ENUM_CROP_STATUS, ENUM_ORDER_STATUS, ENUM_PAYMENT_STATUS)


def _timestamps() -> list[sa.Column]:
	return [
		sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
		sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
	]


def upgrade() -> None:
	bind = op.get_bind()
	for enum in _ENUMS:
		enum.create(bind, checkfirst=True)

	op.create_table(
		"users",
		sa.Column("id", sa.Uuid(), nullable=False),
		sa.Column("email", sa.String(length=320), nullable=False),
		sa.Column("hashed_password", sa.String(length=128), nullable=False),
		sa.Column("name", sa.String(length=120), nullable=False),
		sa.Column("location", sa.String(length=255), nullable=False),
		sa.Column("role", ENUM_USER_ROLE, nullable=False, server_default=sa.text("'buyer'")),
		sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
		*_timestamps(),
		sa.PrimaryKeyConstraint("id"),
	)
	op.create_index("ix_users_email", "users", ["email"], unique=True)

	op.create_table(
		"crops",
		sa.Column("id", sa.Uuid(), nullable=False),
		sa.Column("name", sa.String(length=255), nullable=False),
		sa.Column("quantity", sa.Integer(), nullable=False),
		sa.Column("price", sa.Numeric(12, 2), nullable=False),
		sa.Column("farmer_id", sa.Uuid(), nullable=False),
		sa.Column("status", ENUM_CROP_STATUS, nullable=False, server_default=sa.text("'Available'")),
		*_timestamps(),
		sa.CheckConstraint("quantity >= 0", name="ck_crops_quantity_non_negative"),
		sa.CheckConstraint("price >= 0", name="ck_crops_price_non_negative"),
		sa.CheckConstraint(
			"(quantity = 0 AND status = 'Sold') OR (quantity > 0 AND status = 'Available')",
			name="ck_crops_status_matches_quantity",
		),
		sa.ForeignKeyConstraint(["farmer_id"], ["users.id"], ondelete="CASCADE"),
		sa.PrimaryKeyConstraint("id"),
	)
	op.create_index("ix_crops_farmer_id", "crops", ["farmer_id"])
	op.create_index("ix_crops_status_created", "crops", ["status", "created_at"])

	op.create_table(
		"orders",
		sa.Column("id", sa.Uuid(), nullable=False),
		sa.Column("crop_id", sa.Uuid(), nullable=False),
		sa.Column("buyer_id", sa.Uuid(), nullable=False),
		sa.Column("farmer_id", sa.Uuid(), nullable=False),
		sa.Column("quantity", sa.Integer(), nullable=False),
		sa.Column("total_price", sa.Numeric(14, 2), nullable=False),
		sa.Column("status", ENUM_ORDER_STATUS, nullable=False, server_default=sa.text("'Pending'")),
		sa.Column(
			"payment_status", ENUM_PAYMENT_STATUS, nullable=False, server_default=sa.text("'Pending'")
		),
		*_timestamps(),
		sa.CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
		sa.CheckConstraint("total_price >= 0", name="ck_orders_total_price_non_negative"),
		sa.ForeignKeyConstraint(["buyer_id"], ["users.id"], ondelete="RESTRICT"),
		sa.ForeignKeyConstraint(["farmer_id"], ["users.id"], ondelete="RESTRICT"),
		sa.PrimaryKeyConstraint("id"),
	)
	op.create_index("ix_orders_crop_id", "orders", ["crop_id"])
	op.create_index("ix_orders_buyer_created", "orders", ["buyer_id", "created_at"])
	op.create_index("ix_orders_farmer_created", "orders", ["farmer_id", "created_at"])


def downgrade() -> None:
	op.drop_index("ix_orders_farmer_created", table_name="orders")
	op.drop_index("ix_orders_buyer_created", table_name="orders")
	op.drop_index("ix_orders_crop_id", table_name="orders")
	op.drop_table("orders")
	op.drop_index("ix_crops_status_created", table_name="crops")
	op.drop_index("ix_crops_farmer_id", table_name="crops")
	op.drop_table("crops")
	op.drop_index("ix_users_email", table_name="users")
	op.drop_table("users")
	bind = op.get_bind()
	for enum in reversed(_ENUMS):
		enum.drop(bind, checkfirst=True)
