"""Shared pytest fixtures — async test client, fake session/Redis, SQLite-backed store."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from decimal import Decimal
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from agrochain.auth.dependencies import get_current_user
from agrochain.auth.jwt import create_access_token
from agrochain.database import get_db
from agrochain.main import app
from agrochain.models import Base, Crop, Order, User
from agrochain.models.enums import CropStatusEnum, UserRoleEnum
from tests.factories import make_user


class FakeAsyncSession:
	def __init__(self) -> None:
		self.commit = AsyncMock()
		self.rollback = AsyncMock()
		self.close = AsyncMock()
		self.execute = AsyncMock()


class FakeRedis:
	def __init__(self) -> None:
		self._counter: dict[str, int] = {}
		self.incr = AsyncMock(side_effect=self._incr)
		self.expire = AsyncMock(return_value=True)
		self.ping = AsyncMock(return_value=True)

	async def _incr(self, key: str) -> int:
		value = self._counter.get(key, 0) + 1
		self._counter[key] = value
		return value


@pytest.fixture
def fake_db_session() -> FakeAsyncSession:
	"""A lightweight async-session stub for dependency overrides in API tests."""
	return FakeAsyncSession()


@pytest.fixture
def fake_redis() -> FakeRedis:
	return FakeRedis()


@pytest.fixture
def current_user() -> SimpleNamespace:
	"""The authenticated caller for ``client``; buyer unless a test swaps it."""
	return make_user(UserRoleEnum.buyer)


@asynccontextmanager
async def _client_for_app() -> AsyncGenerator[AsyncClient, None]:
	original_lifespan = app.router.lifespan_context

	@asynccontextmanager
	async def noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
		yield

	app.router.lifespan_context = noop_lifespan
	app.state.redis = None

	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://test") as test_client:
			yield test_client
	finally:
		app.router.lifespan_context = original_lifespan
		app.dependency_overrides.clear()
		app.state.redis = None


@pytest.fixture
async def client(
	fake_db_session: FakeAsyncSession,
	current_user: SimpleNamespace,
) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with lifespan disabled, DB and caller mocked."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	async def override_current_user() -> Any:
		return current_user

	app.dependency_overrides[get_db] = override_get_db
	app.dependency_overrides[get_current_user] = override_current_user
	async with _client_for_app() as test_client:
		yield test_client


@pytest.fixture
async def auth_client(fake_db_session: FakeAsyncSession) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with DB override only (real auth dependencies active)."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	app.dependency_overrides[get_db] = override_get_db
	async with _client_for_app() as test_client:
		yield test_client


@pytest.fixture
def auth_user_id() -> uuid.UUID:
	return uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def access_token(auth_user_id: uuid.UUID) -> str:
	return create_access_token(auth_user_id, expires_minutes=30)


# ── SQLite-backed store for service and concurrency tests ──────────────────


class MarketplaceSeeder:
	"""Inserts and reads back records through short-lived sessions."""

	def __init__(self, factory: async_sessionmaker[AsyncSession]) -> None:
		self.factory = factory

	async def user(self, role: UserRoleEnum, name: str = "Test User") -> User:
		async with self.factory() as session:
			user = User(
				email=f"{uuid.uuid4().hex[:12]}@test.local",
				hashed_password="unused-hash",
				name=name,
				location="Nakuru",
				role=role,
			)
			session.add(user)
			await session.commit()
			return user

	async def crop(
		self,
		farmer_id: uuid.UUID,
		quantity: int = 100,
		price: Decimal = Decimal("50"),
		name: str = "Maize",
	) -> Crop:
		async with self.factory() as session:
			crop = Crop(
				name=name,
				quantity=quantity,
				price=price,
				farmer_id=farmer_id,
				status=CropStatusEnum.available if quantity > 0 else CropStatusEnum.sold,
			)
			session.add(crop)
			await session.commit()
			return crop

	async def load_crop(self, crop_id: uuid.UUID) -> Crop | None:
		async with self.factory() as session:
			row = await session.execute(select(Crop).where(Crop.id == crop_id))
			return row.scalar_one_or_none()

	async def orders_for_crop(self, crop_id: uuid.UUID) -> list[Order]:
		async with self.factory() as session:
			rows = await session.execute(select(Order).where(Order.crop_id == crop_id))
			return list(rows.scalars().all())


@pytest.fixture
async def session_factory(tmp_path: Any) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
	engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}")
	async with engine.begin() as connection:
		await connection.run_sync(Base.metadata.create_all)
	yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
	await engine.dispose()


@pytest.fixture
def seed(session_factory: async_sessionmaker[AsyncSession]) -> MarketplaceSeeder:
	return MarketplaceSeeder(session_factory)
