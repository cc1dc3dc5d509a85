"""Order placement and fulfilment routes."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from agrochain.auth.dependencies import get_current_user, require_role
from agrochain.database import get_db
from agrochain.models.enums import UserRoleEnum
from agrochain.models.users import User
from agrochain.schemas.auth import PartyRead
from agrochain.schemas.crops import CropRead
from agrochain.schemas.orders import (
	BuyerOrderListRead,
	BuyerOrderRead,
	FarmerOrderListRead,
	FarmerOrderRead,
	OrderCreate,
	OrderRead,
	OrderStatusUpdate,
	PaymentStatusUpdate,
)
from agrochain.services.errors import to_http_exception
from agrochain.services.order_service import OrderService, OrderView

router = APIRouter(prefix="/orders", tags=["orders"])


def _map_error(exc: Exception) -> HTTPException:
	return to_http_exception(exc, "Unexpected order service failure")


def _order_fields(order: Any) -> dict[str, Any]:
	return {
		"id": order.id,
		"crop_id": order.crop_id,
		"buyer_id": order.buyer_id,
		"farmer_id": order.farmer_id,
		"quantity": order.quantity,
		"total_price": order.total_price,
		"status": order.status,
		"payment_status": order.payment_status,
		"created_at": order.created_at,
		"updated_at": order.updated_at,
	}


def _to_party(user: Any | None) -> PartyRead | None:
	if user is None:
		return None
	return PartyRead(id=user.id, name=user.name, email=user.email)


def _to_crop(crop: Any | None) -> CropRead | None:
	return CropRead.model_validate(crop) if crop is not None else None


def _to_buyer_view(view: OrderView) -> BuyerOrderRead:
	return BuyerOrderRead(
		**_order_fields(view.order),
		crop=_to_crop(view.crop),
		farmer=_to_party(view.counterparty),
	)


def _to_farmer_view(view: OrderView) -> FarmerOrderRead:
	return FarmerOrderRead(
		**_order_fields(view.order),
		crop=_to_crop(view.crop),
		buyer=_to_party(view.counterparty),
	)


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def place_order(
	payload: OrderCreate,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(require_role(UserRoleEnum.buyer)),
) -> OrderRead:
	service = OrderService(db)
	try:
		order = await service.place_order(current_user.id, payload.crop_id, payload.quantity)
	except Exception as exc:
		raise _map_error(exc) from exc
	return OrderRead(**_order_fields(order))


@router.get("/buyer", response_model=BuyerOrderListRead)
async def list_buyer_orders(
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> BuyerOrderListRead:
	service = OrderService(db)
	try:
		views = await service.list_for_buyer(current_user.id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return BuyerOrderListRead(items=[_to_buyer_view(view) for view in views])


@router.get("/farmer", response_model=FarmerOrderListRead)
async def list_farmer_orders(
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> FarmerOrderListRead:
	service = OrderService(db)
	try:
		views = await service.list_for_farmer(current_user.id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return FarmerOrderListRead(items=[_to_farmer_view(view) for view in views])


@router.patch("/{order_id}/status", response_model=OrderRead)
async def update_order_status(
	order_id: uuid.UUID,
	payload: OrderStatusUpdate,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> OrderRead:
	service = OrderService(db)
	try:
		order = await service.update_order_status(order_id, current_user.id, payload.status)
	except Exception as exc:
		raise _map_error(exc) from exc
	return OrderRead(**_order_fields(order))


@router.patch("/{order_id}/payment", response_model=OrderRead)
async def update_payment_status(
	order_id: uuid.UUID,
	payload: PaymentStatusUpdate,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> OrderRead:
	service = OrderService(db)
	try:
		order = await service.update_payment_status(order_id, current_user.id, payload.payment_status)
	except Exception as exc:
		raise _map_error(exc) from exc
	return OrderRead(**_order_fields(order))
