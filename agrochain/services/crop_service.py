"""Crop listing CRUD for farmers and the public catalogue."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrochain.models.crops import Crop
from agrochain.models.enums import CropStatusEnum
from agrochain.models.users import User
from agrochain.schemas.crops import CropCreate, CropUpdate
from agrochain.services.errors import NotFoundError, UnauthorizedError, UnavailableError
from agrochain.services.inventory import status_for_quantity
from agrochain.services.locks import KeyedLocks, crop_locks

logger = structlog.get_logger("agrochain.crops")


class CropService:
	"""Owner-only mutations share the per-crop lock with order placement."""

	def __init__(self, db: AsyncSession, *, locks: KeyedLocks | None = None):
		self.db = db
		self.locks = locks if locks is not None else crop_locks

	async def list_available(self) -> list[tuple[Crop, User]]:
		stmt = (
			select(Crop, User)
			.join(User, User.id == Crop.farmer_id)
			.where(Crop.status == CropStatusEnum.available)
			.order_by(Crop.created_at.desc())
		)
		rows = await self.db.execute(stmt)
		return [(crop, farmer) for crop, farmer in rows.all()]

	async def list_for_farmer(self, farmer_id: uuid.UUID) -> list[Crop]:
		stmt = select(Crop).where(Crop.farmer_id == farmer_id).order_by(Crop.created_at.desc())
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def get_crop(self, crop_id: uuid.UUID) -> Crop:
		row = await self.db.execute(select(Crop).where(Crop.id == crop_id))
		crop = row.scalar_one_or_none()
		if crop is None:
			raise NotFoundError(f"Crop {crop_id} not found")
		return crop

	async def create_crop(self, farmer_id: uuid.UUID, payload: CropCreate) -> Crop:
		crop = Crop(
			name=payload.name,
			quantity=payload.quantity,
			price=payload.price,
			farmer_id=farmer_id,
			status=CropStatusEnum.available,
		)
		self.db.add(crop)
		await self.db.flush()
		await self.db.refresh(crop)
		logger.info("crop_listed", crop_id=str(crop.id), farmer_id=str(farmer_id))
		return crop

	async def update_crop(self, crop_id: uuid.UUID, farmer_id: uuid.UUID, payload: CropUpdate) -> Crop:
		changes = payload.model_dump(exclude_unset=True, exclude_none=True)
		async with self.locks.hold(crop_id):
			crop = await self._require_owned(crop_id, farmer_id)

			if "quantity" in changes:
				quantity = changes.pop("quantity")
				if crop.status == CropStatusEnum.sold and quantity > 0:
					raise UnavailableError("Sold crops cannot be restocked")
				crop.quantity = quantity
				crop.status = status_for_quantity(quantity)
			for field, value in changes.items():
				setattr(crop, field, value)

			await self.db.flush()
			await self.db.refresh(crop)
			await self.db.commit()

		logger.info("crop_updated", crop_id=str(crop.id), status=crop.status.value)
		return crop

	async def delete_crop(self, crop_id: uuid.UUID, farmer_id: uuid.UUID) -> None:
		async with self.locks.hold(crop_id):
			crop = await self._require_owned(crop_id, farmer_id)
			await self.db.delete(crop)
			await self.db.flush()
			await self.db.commit()
		logger.info("crop_deleted", crop_id=str(crop_id), farmer_id=str(farmer_id))

	async def _require_owned(self, crop_id: uuid.UUID, farmer_id: uuid.UUID) -> Crop:
		stmt = (
			select(Crop)
			.where(Crop.id == crop_id)
			.with_for_update()
			.execution_options(populate_existing=True)
		)
		row = await self.db.execute(stmt)
		crop = row.scalar_one_or_none()
		if crop is None:
			raise NotFoundError(f"Crop {crop_id} not found")
		if crop.farmer_id != farmer_id:
			raise UnauthorizedError("Not authorized")
		return crop
