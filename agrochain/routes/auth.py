"""Registration, login, token refresh and profile routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from agrochain.auth.dependencies import get_current_user, raise_auth
from agrochain.auth.jwt import AuthError, issue_token_pair
from agrochain.database import get_db
from agrochain.models.users import User
from agrochain.schemas.auth import (
	AccessTokenResponse,
	LoginRequest,
	RefreshRequest,
	RegisterRequest,
	TokenResponse,
	UserRead,
)
from agrochain.services.auth_service import AuthService
from agrochain.services.errors import to_http_exception

router = APIRouter(prefix="/auth", tags=["auth"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, AuthError):
		return raise_auth(exc)
	return to_http_exception(exc, "Unexpected auth service failure")


def _token_response(user: User) -> TokenResponse:
	tokens = issue_token_pair(user.id)
	return TokenResponse(
		access_token=tokens.access_token,
		refresh_token=tokens.refresh_token,
		token_type=tokens.token_type,
		user=UserRead.model_validate(user),
	)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
	payload: RegisterRequest,
	db: AsyncSession = Depends(get_db),
) -> TokenResponse:
	service = AuthService(db)
	try:
		user = await service.register(payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
	payload: LoginRequest,
	db: AsyncSession = Depends(get_db),
) -> TokenResponse:
	service = AuthService(db)
	try:
		user = await service.authenticate(payload.email, payload.password)
	except Exception as exc:
		raise _map_error(exc) from exc
	return _token_response(user)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
	payload: RefreshRequest,
	db: AsyncSession = Depends(get_db),
) -> AccessTokenResponse:
	service = AuthService(db)
	try:
		access_token = await service.refresh_access_token(payload.refresh_token)
	except Exception as exc:
		raise _map_error(exc) from exc
	return AccessTokenResponse(access_token=access_token)


@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)) -> UserRead:
	return UserRead.model_validate(current_user)


@router.post("/switch-role", response_model=UserRead)
async def switch_role(
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> UserRead:
	service = AuthService(db)
	try:
		user = await service.switch_role(current_user)
	except Exception as exc:
		raise _map_error(exc) from exc
	return UserRead.model_validate(user)
