from __future__ import annotations

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from agrochain.models.crops import Crop
from agrochain.models.enums import (
	CropStatusEnum,
	OrderStatusEnum,
	PaymentStatusEnum,
	UserRoleEnum,
)
from agrochain.services.errors import (
	ConflictError,
	InsufficientStockError,
	InvalidRequestError,
	NotFoundError,
	PersistenceFailureError,
	UnauthorizedError,
	UnavailableError,
)
from agrochain.services.locks import KeyedLocks, crop_locks
from agrochain.services.order_service import (
	ORDER_STATUS_TRANSITIONS,
	PAYMENT_STATUS_TRANSITIONS,
	OrderService,
	check_transition,
)


async def _buy(session_factory, buyer_id, crop_id, quantity):
	async with session_factory() as session:
		return await OrderService(session).place_order(buyer_id, crop_id, quantity)


def _assert_status_matches_quantity(crop: Crop) -> None:
	assert (crop.quantity == 0) == (crop.status == CropStatusEnum.sold)


@pytest.mark.asyncio
async def test_buying_whole_listing_sells_out(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=100, price=Decimal("50"))

	order = await _buy(session_factory, buyer.id, crop.id, 100)

	assert order.quantity == 100
	assert order.total_price == Decimal("5000")
	assert order.farmer_id == farmer.id
	assert order.status == OrderStatusEnum.pending
	assert order.payment_status == PaymentStatusEnum.pending

	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 0
	assert stored.status == CropStatusEnum.sold
	assert len(await seed.orders_for_crop(crop.id)) == 1


@pytest.mark.asyncio
async def test_partial_purchase_keeps_crop_available(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=10, price=Decimal("50"))

	order = await _buy(session_factory, buyer.id, crop.id, 3)

	assert order.total_price == Decimal("150")
	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 7
	assert stored.status == CropStatusEnum.available


@pytest.mark.asyncio
async def test_insufficient_stock_leaves_crop_untouched(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=5)

	with pytest.raises(InsufficientStockError):
		await _buy(session_factory, buyer.id, crop.id, 6)

	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 5
	assert stored.status == CropStatusEnum.available
	assert await seed.orders_for_crop(crop.id) == []


@pytest.mark.asyncio
async def test_sold_crop_cannot_be_bought_again(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=4)
	await _buy(session_factory, buyer.id, crop.id, 4)

	with pytest.raises(UnavailableError):
		await _buy(session_factory, buyer.id, crop.id, 1)
	assert len(await seed.orders_for_crop(crop.id)) == 1


@pytest.mark.asyncio
async def test_unknown_crop_and_bad_quantity(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=10)

	with pytest.raises(NotFoundError):
		await _buy(session_factory, buyer.id, uuid4(), 1)
	# A missing crop is reported before a bad quantity.
	with pytest.raises(NotFoundError):
		await _buy(session_factory, buyer.id, uuid4(), 0)
	for quantity in (0, -2, True):
		with pytest.raises(InvalidRequestError):
			await _buy(session_factory, buyer.id, crop.id, quantity)

	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 10
	assert await seed.orders_for_crop(crop.id) == []


@pytest.mark.asyncio
async def test_status_invariant_holds_across_purchase_sequence(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=12)

	for quantity in (5, 4, 2, 1):
		await _buy(session_factory, buyer.id, crop.id, quantity)
		_assert_status_matches_quantity(await seed.load_crop(crop.id))

	stored = await seed.load_crop(crop.id)
	assert stored.status == CropStatusEnum.sold


@pytest.mark.asyncio
async def test_concurrent_purchases_never_oversell(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyers = [await seed.user(UserRoleEnum.buyer) for _ in range(8)]
	crop = await seed.crop(farmer.id, quantity=100)

	async def attempt(buyer_id):
		try:
			order = await _buy(session_factory, buyer_id, crop.id, 30)
		except InsufficientStockError:
			return 0
		return order.quantity

	committed = await asyncio.gather(*(attempt(buyer.id) for buyer in buyers))

	stored = await seed.load_crop(crop.id)
	assert sum(committed) == 90
	assert sum(committed) + stored.quantity == 100
	assert committed.count(30) == 3
	assert len(await seed.orders_for_crop(crop.id)) == 3
	assert len(crop_locks) == 0


@pytest.mark.asyncio
async def test_concurrent_purchases_sell_out_exactly_once(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyers = [await seed.user(UserRoleEnum.buyer) for _ in range(6)]
	crop = await seed.crop(farmer.id, quantity=100)

	async def attempt(buyer_id):
		try:
			return (await _buy(session_factory, buyer_id, crop.id, 25)).quantity
		except UnavailableError:
			return 0

	committed = await asyncio.gather(*(attempt(buyer.id) for buyer in buyers))

	stored = await seed.load_crop(crop.id)
	assert sum(committed) == 100
	assert stored.quantity == 0
	assert stored.status == CropStatusEnum.sold


@pytest.mark.asyncio
async def test_two_buyers_racing_for_sixty_of_hundred(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer_a = await seed.user(UserRoleEnum.buyer)
	buyer_b = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=100)

	results = await asyncio.gather(
		_buy(session_factory, buyer_a.id, crop.id, 60),
		_buy(session_factory, buyer_b.id, crop.id, 60),
		return_exceptions=True,
	)

	failures = [result for result in results if isinstance(result, Exception)]
	assert len(failures) == 1
	assert isinstance(failures[0], InsufficientStockError)
	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 40
	assert stored.status == CropStatusEnum.available


@pytest.mark.asyncio
async def test_failed_commit_rolls_back_and_retry_decrements_once(
	session_factory,
	seed,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=10)

	async with session_factory() as session:
		async def failing_commit() -> None:
			raise OperationalError("COMMIT", {}, RuntimeError("disk I/O error"))

		monkeypatch.setattr(session, "commit", failing_commit)
		with pytest.raises(PersistenceFailureError):
			await OrderService(session).place_order(buyer.id, crop.id, 4)

	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 10
	assert await seed.orders_for_crop(crop.id) == []

	await _buy(session_factory, buyer.id, crop.id, 4)

	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 6
	assert len(await seed.orders_for_crop(crop.id)) == 1


@pytest.mark.asyncio
async def test_stale_read_surfaces_conflict(
	session_factory,
	seed,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=10)
	stale = await seed.load_crop(crop.id)

	await _buy(session_factory, buyer.id, crop.id, 3)

	async with session_factory() as session:
		service = OrderService(session)

		async def stale_lock(_crop_id):
			return stale

		monkeypatch.setattr(service, "_lock_crop", stale_lock)
		with pytest.raises(ConflictError):
			await service.place_order(buyer.id, crop.id, 2)

	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 7
	assert len(await seed.orders_for_crop(crop.id)) == 1


@pytest.mark.asyncio
async def test_lock_wait_timeout_is_conflict_without_side_effects(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=10)
	locks = KeyedLocks()

	async with locks.hold(crop.id):
		async with session_factory() as session:
			service = OrderService(session, locks=locks, timeout_seconds=0.05)
			with pytest.raises(ConflictError):
				await service.place_order(buyer.id, crop.id, 1)

	stored = await seed.load_crop(crop.id)
	assert stored.quantity == 10
	assert len(locks) == 0


@pytest.mark.asyncio
async def test_only_owning_farmer_changes_order_status(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	other_farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=10)
	order = await _buy(session_factory, buyer.id, crop.id, 2)

	async with session_factory() as session:
		with pytest.raises(UnauthorizedError):
			await OrderService(session).update_order_status(order.id, other_farmer.id, OrderStatusEnum.completed)
		with pytest.raises(UnauthorizedError):
			await OrderService(session).update_order_status(order.id, buyer.id, OrderStatusEnum.completed)

	async with session_factory() as session:
		unchanged = await OrderService(session).get_order(order.id)
		assert unchanged.status == OrderStatusEnum.pending

		updated = await OrderService(session).update_order_status(order.id, farmer.id, OrderStatusEnum.completed)
		await session.commit()
		assert updated.status == OrderStatusEnum.completed
		assert updated.total_price == Decimal("100")

	async with session_factory() as session:
		with pytest.raises(InvalidRequestError):
			await OrderService(session).update_order_status(order.id, farmer.id, OrderStatusEnum.cancelled)


@pytest.mark.asyncio
async def test_only_ordering_buyer_changes_payment_status(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	buyer = await seed.user(UserRoleEnum.buyer)
	crop = await seed.crop(farmer.id, quantity=10)
	order = await _buy(session_factory, buyer.id, crop.id, 2)

	async with session_factory() as session:
		with pytest.raises(UnauthorizedError):
			await OrderService(session).update_payment_status(order.id, farmer.id, PaymentStatusEnum.completed)

		updated = await OrderService(session).update_payment_status(order.id, buyer.id, PaymentStatusEnum.failed)
		await session.commit()
		assert updated.payment_status == PaymentStatusEnum.failed

	async with session_factory() as session:
		with pytest.raises(InvalidRequestError):
			await OrderService(session).update_payment_status(order.id, buyer.id, PaymentStatusEnum.pending)


@pytest.mark.asyncio
async def test_missing_order_is_not_found(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer)
	async with session_factory() as session:
		with pytest.raises(NotFoundError):
			await OrderService(session).update_order_status(uuid4(), farmer.id, OrderStatusEnum.completed)


@pytest.mark.asyncio
async def test_order_lists_expand_crop_and_counterparty(session_factory, seed) -> None:
	farmer = await seed.user(UserRoleEnum.farmer, name="Jane Farmer")
	buyer = await seed.user(UserRoleEnum.buyer, name="Bob Buyer")
	crop = await seed.crop(farmer.id, quantity=10, name="Sorghum")
	await _buy(session_factory, buyer.id, crop.id, 2)

	async with session_factory() as session:
		buyer_views = await OrderService(session).list_for_buyer(buyer.id)
		farmer_views = await OrderService(session).list_for_farmer(farmer.id)

	assert len(buyer_views) == 1
	assert buyer_views[0].crop.name == "Sorghum"
	assert buyer_views[0].counterparty.name == "Jane Farmer"
	assert len(farmer_views) == 1
	assert farmer_views[0].counterparty.name == "Bob Buyer"


def test_transition_tables_are_terminal_outside_pending() -> None:
	check_transition("order status", OrderStatusEnum.pending, OrderStatusEnum.cancelled, ORDER_STATUS_TRANSITIONS)
	check_transition("payment status", PaymentStatusEnum.pending, PaymentStatusEnum.completed, PAYMENT_STATUS_TRANSITIONS)

	for terminal in (OrderStatusEnum.completed, OrderStatusEnum.cancelled):
		for target in OrderStatusEnum:
			with pytest.raises(InvalidRequestError):
				check_transition("order status", terminal, target, ORDER_STATUS_TRANSITIONS)
	with pytest.raises(InvalidRequestError):
		check_transition("order status", OrderStatusEnum.pending, OrderStatusEnum.pending, ORDER_STATUS_TRANSITIONS)
	with pytest.raises(InvalidRequestError):
		check_transition("payment status", PaymentStatusEnum.failed, PaymentStatusEnum.pending, PAYMENT_STATUS_TRANSITIONS)
