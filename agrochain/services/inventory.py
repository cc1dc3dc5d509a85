"""Purchase validation, order construction and inventory arithmetic.

Everything here is pure: no I/O, no session access.  ``OrderService`` runs
these steps inside the per-crop critical section.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from agrochain.models.crops import Crop
from agrochain.models.enums import CropStatusEnum, OrderStatusEnum, PaymentStatusEnum
from agrochain.models.orders import Order
from agrochain.services.errors import (
	InsufficientStockError,
	InvalidRequestError,
	NotFoundError,
	UnavailableError,
)


@dataclass(slots=True, frozen=True)
class StockChange:
	quantity: int
	status: CropStatusEnum


def validate_quantity(quantity: Any) -> int:
	# bool is an int subclass; True must not read as "1 kg".
	if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
		raise InvalidRequestError("quantity must be a positive whole number")
	return quantity


def check_purchase(crop: Crop | None, quantity: Any, crop_id: uuid.UUID | None = None) -> Crop:
	"""Return ``crop`` unchanged if buying ``quantity`` of it is legal right now.

	Checks run in a fixed order: the crop exists, the quantity is a positive
	integer, the crop is still Available, and enough stock remains.
	"""
	if crop is None:
		raise NotFoundError(f"Crop {crop_id} not found" if crop_id else "Crop not found")
	requested = validate_quantity(quantity)
	if crop.status != CropStatusEnum.available:
		raise UnavailableError("Crop is not available")
	if requested > crop.quantity:
		raise InsufficientStockError(
			f"Insufficient quantity available: requested {requested}, remaining {crop.quantity}"
		)
	return crop


def total_price(unit_price: Decimal, quantity: int) -> Decimal:
	return Decimal(unit_price) * quantity


def build_order(crop: Crop, buyer_id: uuid.UUID, quantity: int) -> Order:
	"""Construct (but do not persist) the order for a validated purchase."""
	return Order(
		id=uuid.uuid4(),
		crop_id=crop.id,
		buyer_id=buyer_id,
		farmer_id=crop.farmer_id,
		quantity=quantity,
		total_price=total_price(crop.price, quantity),
		status=OrderStatusEnum.pending,
		payment_status=PaymentStatusEnum.pending,
	)


def stock_after(current_quantity: int, sold: int) -> StockChange:
	remaining = current_quantity - sold
	if remaining < 0:
		raise InsufficientStockError(
			f"Insufficient quantity available: requested {sold}, remaining {current_quantity}"
		)
	return StockChange(quantity=remaining, status=status_for_quantity(remaining))


def status_for_quantity(quantity: int) -> CropStatusEnum:
	return CropStatusEnum.sold if quantity == 0 else CropStatusEnum.available
