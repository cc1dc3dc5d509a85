"""Pydantic request/response schemas for orders."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from agrochain.models.enums import OrderStatusEnum, PaymentStatusEnum
from agrochain.schemas.auth import PartyRead
from agrochain.schemas.base import MAX_QUANTITY, APIModel, Money
from agrochain.schemas.crops import CropRead


class OrderCreate(APIModel):
	crop_id: uuid.UUID
	# Non-positive values reach the guard and come back as 400 invalid_request.
	quantity: int = Field(strict=True, le=MAX_QUANTITY)


class OrderStatusUpdate(APIModel):
	status: OrderStatusEnum


class PaymentStatusUpdate(APIModel):
	payment_status: PaymentStatusEnum


class OrderRead(APIModel):
	id: uuid.UUID
	crop_id: uuid.UUID
	buyer_id: uuid.UUID
	farmer_id: uuid.UUID
	quantity: int
	total_price: Money
	status: OrderStatusEnum
	payment_status: PaymentStatusEnum
	created_at: datetime
	updated_at: datetime


class BuyerOrderRead(OrderRead):
	crop: CropRead | None = None
	farmer: PartyRead | None = None


class FarmerOrderRead(OrderRead):
	crop: CropRead | None = None
	buyer: PartyRead | None = None


class BuyerOrderListRead(APIModel):
	items: list[BuyerOrderRead]


class FarmerOrderListRead(APIModel):
	items: list[FarmerOrderRead]
