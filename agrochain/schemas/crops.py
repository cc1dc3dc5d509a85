"""Pydantic request/response schemas for crop listings."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from agrochain.models.enums import CropStatusEnum
from agrochain.schemas.auth import PartyRead
from agrochain.schemas.base import MAX_QUANTITY, APIModel, Money


class CropCreate(APIModel):
	name: str = Field(min_length=1, max_length=255)
	quantity: int = Field(strict=True, ge=1, le=MAX_QUANTITY)
	price: Money = Field(ge=0, max_digits=12, decimal_places=2)


class CropUpdate(APIModel):
	name: str | None = Field(default=None, min_length=1, max_length=255)
	quantity: int | None = Field(default=None, strict=True, ge=0, le=MAX_QUANTITY)
	price: Money | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class CropRead(APIModel):
	id: uuid.UUID
	name: str
	quantity: int
	price: Money
	farmer_id: uuid.UUID
	status: CropStatusEnum
	created_at: datetime
	updated_at: datetime


class CropListingRead(CropRead):
	farmer: PartyRead | None = None


class CropListRead(APIModel):
	items: list[CropListingRead]


class CropDeleted(APIModel):
	id: uuid.UUID
	message: str = "Crop deleted"
