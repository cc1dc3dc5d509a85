"""Registration, credential checks, token refresh and role switching."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrochain.auth.dependencies import hash_password, verify_password
from agrochain.auth.jwt import AuthError, create_access_token, token_subject
from agrochain.models.enums import UserRoleEnum
from agrochain.models.users import User
from agrochain.schemas.auth import RegisterRequest
from agrochain.services.errors import DuplicateError

logger = structlog.get_logger("agrochain.auth")


class AuthService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def register(self, payload: RegisterRequest) -> User:
		email = payload.email.lower()
		if await self._find_by_email(email) is not None:
			raise DuplicateError("Email is already registered")

		user = User(
			email=email,
			hashed_password=hash_password(payload.password),
			name=payload.name,
			location=payload.location,
			role=payload.role,
		)
		self.db.add(user)
		await self.db.flush()
		await self.db.refresh(user)
		logger.info("user_registered", user_id=str(user.id), role=user.role.value)
		return user

	async def authenticate(self, email: str, password: str) -> User:
		user = await self._find_by_email(email.lower())
		if user is None or not user.is_active or not verify_password(password, user.hashed_password):
			raise AuthError(code="invalid_credentials", detail="Invalid email or password")
		return user

	async def refresh_access_token(self, refresh_token: str) -> str:
		user_id = token_subject(refresh_token, expected_type="refresh")
		user = await self._get_active(user_id)
		return create_access_token(user.id)

	async def switch_role(self, user: User) -> User:
		user.role = UserRoleEnum.buyer if user.role == UserRoleEnum.farmer else UserRoleEnum.farmer
		await self.db.flush()
		await self.db.refresh(user)
		logger.info("user_role_switched", user_id=str(user.id), role=user.role.value)
		return user

	async def _find_by_email(self, email: str) -> User | None:
		row = await self.db.execute(select(User).where(User.email == email))
		return row.scalar_one_or_none()

	async def _get_active(self, user_id: uuid.UUID) -> User:
		row = await self.db.execute(select(User).where(User.id == user_id))
		user = row.scalar_one_or_none()
		if user is None or not user.is_active:
			raise AuthError(code="user_invalid", detail="User is not active")
		return user
