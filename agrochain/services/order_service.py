"""Order placement, settlement and status management.

``place_order`` is the only path that touches crop inventory on behalf of a
buyer.  The read-check-write span runs under three layers of exclusion:

1. an in-process ``asyncio.Lock`` per crop id (``crop_locks``),
2. ``SELECT ... FOR UPDATE`` on the crop row (cross-process on PostgreSQL),
3. a compare-and-set UPDATE that only matches the quantity it read.

The order INSERT and the crop UPDATE commit together or not at all.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agrochain.config import get_settings
from agrochain.models.crops import Crop
from agrochain.models.enums import CropStatusEnum, OrderStatusEnum, PaymentStatusEnum
from agrochain.models.orders import Order
from agrochain.models.users import User
from agrochain.services.errors import (
	ConflictError,
	InvalidRequestError,
	MarketplaceError,
	NotFoundError,
	PersistenceFailureError,
	UnauthorizedError,
)
from agrochain.services.inventory import build_order, check_purchase, stock_after
from agrochain.services.locks import KeyedLocks, crop_locks

logger = structlog.get_logger("agrochain.orders")

ORDER_STATUS_TRANSITIONS: dict[OrderStatusEnum, frozenset[OrderStatusEnum]] = {
	OrderStatusEnum.pending: frozenset({OrderStatusEnum.completed, OrderStatusEnum.cancelled}),
}

PAYMENT_STATUS_TRANSITIONS: dict[PaymentStatusEnum, frozenset[PaymentStatusEnum]] = {
	PaymentStatusEnum.pending: frozenset({PaymentStatusEnum.completed, PaymentStatusEnum.failed}),
}


def check_transition(
	field: str,
	current: Any,
	target: Any,
	transitions: dict[Any, frozenset[Any]],
) -> None:
	if target not in transitions.get(current, frozenset()):
		raise InvalidRequestError(f"Cannot change {field} from {current} to {target}")


@dataclass(slots=True)
class OrderView:
	"""An order with its crop (``None`` once deleted) and the other party."""

	order: Order
	crop: Crop | None
	counterparty: User | None


class OrderService:
	def __init__(
		self,
		db: AsyncSession,
		*,
		locks: KeyedLocks | None = None,
		timeout_seconds: float | None = None,
	):
		self.db = db
		self.locks = locks if locks is not None else crop_locks
		self.timeout_seconds = (
			timeout_seconds if timeout_seconds is not None else get_settings().purchase_timeout_seconds
		)

	async def place_order(self, buyer_id: uuid.UUID, crop_id: uuid.UUID, quantity: Any) -> Order:
		log = logger.bind(crop_id=str(crop_id), buyer_id=str(buyer_id), quantity=quantity)

		try:
			async with asyncio.timeout(self.timeout_seconds):
				async with self.locks.hold(crop_id):
					crop = await self._lock_crop(crop_id)
					check_purchase(crop, quantity, crop_id)
					order = build_order(crop, buyer_id, quantity)
					await self._settle(crop, order, order.quantity)
					await self.db.commit()
		except TimeoutError as exc:
			await self.db.rollback()
			log.warning("purchase_timed_out", timeout_seconds=self.timeout_seconds)
			raise ConflictError("Purchase did not complete in time; retry") from exc
		except MarketplaceError as exc:
			await self.db.rollback()
			log.info("purchase_rejected", reason=exc.code)
			raise
		except SQLAlchemyError as exc:
			await self.db.rollback()
			log.error("purchase_rolled_back", error=str(exc))
			raise PersistenceFailureError("Order could not be saved") from exc

		log.info(
			"order_placed",
			order_id=str(order.id),
			total_price=str(order.total_price),
			remaining=crop.quantity,
			crop_status=crop.status.value,
		)
		return order

	async def _lock_crop(self, crop_id: uuid.UUID) -> Crop | None:
		stmt = (
			select(Crop)
			.where(Crop.id == crop_id)
			.with_for_update()
			.execution_options(populate_existing=True)
		)
		row = await self.db.execute(stmt)
		return row.scalar_one_or_none()

	async def _settle(self, crop: Crop, order: Order, quantity: int) -> None:
		change = stock_after(crop.quantity, quantity)
		self.db.add(order)

		result = await self.db.execute(
			update(Crop)
			.where(
				Crop.id == crop.id,
				Crop.quantity == crop.quantity,
				Crop.status == CropStatusEnum.available,
			)
			.values(quantity=change.quantity, status=change.status, updated_at=datetime.now(UTC))
			.execution_options(synchronize_session=False)
		)
		if result.rowcount != 1:
			logger.warning("purchase_conflict", crop_id=str(crop.id), observed_quantity=crop.quantity)
			raise ConflictError("Crop changed while the purchase was in progress; retry")

		await self.db.flush()
		await self.db.refresh(crop)

	async def get_order(self, order_id: uuid.UUID, *, for_update: bool = False) -> Order:
		stmt = select(Order).where(Order.id == order_id)
		if for_update:
			stmt = stmt.with_for_update()
		row = await self.db.execute(stmt)
		order = row.scalar_one_or_none()
		if order is None:
			raise NotFoundError(f"Order {order_id} not found")
		return order

	async def update_order_status(
		self,
		order_id: uuid.UUID,
		farmer_id: uuid.UUID,
		target: OrderStatusEnum,
	) -> Order:
		order = await self.get_order(order_id, for_update=True)
		if order.farmer_id != farmer_id:
			raise UnauthorizedError("Not authorized")
		check_transition("order status", order.status, target, ORDER_STATUS_TRANSITIONS)

		order.status = target
		await self.db.flush()
		await self.db.refresh(order)
		logger.info("order_status_changed", order_id=str(order.id), status=target.value)
		return order

	async def update_payment_status(
		self,
		order_id: uuid.UUID,
		buyer_id: uuid.UUID,
		target: PaymentStatusEnum,
	) -> Order:
		order = await self.get_order(order_id, for_update=True)
		if order.buyer_id != buyer_id:
			raise UnauthorizedError("Not authorized")
		check_transition("payment status", order.payment_status, target, PAYMENT_STATUS_TRANSITIONS)

		order.payment_status = target
		await self.db.flush()
		await self.db.refresh(order)
		logger.info("payment_status_changed", order_id=str(order.id), payment_status=target.value)
		return order

	async def list_for_buyer(self, buyer_id: uuid.UUID) -> list[OrderView]:
		orders = await self._orders_where(Order.buyer_id == buyer_id)
		crops = await self._crops_by_id(order.crop_id for order in orders)
		farmers = await self._users_by_id(order.farmer_id for order in orders)
		return [
			OrderView(order=order, crop=crops.get(order.crop_id), counterparty=farmers.get(order.farmer_id))
			for order in orders
		]

	async def list_for_farmer(self, farmer_id: uuid.UUID) -> list[OrderView]:
		orders = await self._orders_where(Order.farmer_id == farmer_id)
		crops = await self._crops_by_id(order.crop_id for order in orders)
		buyers = await self._users_by_id(order.buyer_id for order in orders)
		return [
			OrderView(order=order, crop=crops.get(order.crop_id), counterparty=buyers.get(order.buyer_id))
			for order in orders
		]

	async def _orders_where(self, clause: Any) -> list[Order]:
		stmt = select(Order).where(clause).order_by(Order.created_at.desc())
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def _crops_by_id(self, ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Crop]:
		wanted = set(ids)
		if not wanted:
			return {}
		rows = await self.db.execute(select(Crop).where(Crop.id.in_(wanted)))
		return {crop.id: crop for crop in rows.scalars().all()}

	async def _users_by_id(self, ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, User]:
		wanted = set(ids)
		if not wanted:
			return {}
		rows = await self.db.execute(select(User).where(User.id.in_(wanted)))
		return {user.id: user for user in rows.scalars().all()}
