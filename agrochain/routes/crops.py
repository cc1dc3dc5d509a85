"""Crop listing routes — public catalogue and farmer-owned CRUD."""

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
from agrochain.schemas.crops import (
	CropCreate,
	CropDeleted,
	CropListingRead,
	CropListRead,
	CropRead,
	CropUpdate,
)
from agrochain.services.crop_service import CropService
from agrochain.services.errors import to_http_exception

router = APIRouter(prefix="/crops", tags=["crops"])


def _map_error(exc: Exception) -> HTTPException:
	return to_http_exception(exc, "Unexpected crop service failure")


def _to_party(user: Any) -> PartyRead:
	return PartyRead(id=user.id, name=user.name, email=user.email, location=user.location)


def _to_listing(crop: Any, farmer: Any | None = None) -> CropListingRead:
	return CropListingRead(
		id=crop.id,
		name=crop.name,
		quantity=crop.quantity,
		price=crop.price,
		farmer_id=crop.farmer_id,
		status=crop.status,
		created_at=crop.created_at,
		updated_at=crop.updated_at,
		farmer=_to_party(farmer) if farmer is not None else None,
	)


@router.get("", response_model=CropListRead)
async def list_available_crops(db: AsyncSession = Depends(get_db)) -> CropListRead:
	service = CropService(db)
	try:
		rows = await service.list_available()
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropListRead(items=[_to_listing(crop, farmer) for crop, farmer in rows])


@router.get("/farmer", response_model=CropListRead)
async def list_my_crops(
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> CropListRead:
	service = CropService(db)
	try:
		crops = await service.list_for_farmer(current_user.id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropListRead(items=[_to_listing(crop) for crop in crops])


@router.post("", response_model=CropRead, status_code=status.HTTP_201_CREATED)
async def create_crop(
	payload: CropCreate,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(require_role(UserRoleEnum.farmer)),
) -> CropRead:
	service = CropService(db)
	try:
		crop = await service.create_crop(current_user.id, payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropRead.model_validate(crop)


@router.patch("/{crop_id}", response_model=CropRead)
async def update_crop(
	crop_id: uuid.UUID,
	payload: CropUpdate,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> CropRead:
	service = CropService(db)
	try:
		crop = await service.update_crop(crop_id, current_user.id, payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropRead.model_validate(crop)


@router.delete("/{crop_id}", response_model=CropDeleted)
async def delete_crop(
	crop_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> CropDeleted:
	service = CropService(db)
	try:
		await service.delete_crop(crop_id, current_user.id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropDeleted(id=crop_id)
