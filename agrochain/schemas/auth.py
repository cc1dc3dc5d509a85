"""Pydantic request/response schemas for registration, login and profile."""

from __future__ import annotations

import re
import uuid
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from agrochain.models.enums import UserRoleEnum
from agrochain.schemas.base import APIModel

_PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[a-zA-Z\d]{8,}$")
_NAME_RULE = re.compile(r"^[a-zA-Z\s]{2,}$")


class RegisterRequest(APIModel):
	name: str = Field(min_length=2, max_length=120)
	email: EmailStr
	password: str = Field(min_length=8, max_length=72)
	role: UserRoleEnum
	location: str = Field(min_length=3, max_length=255)

	@field_validator("name")
	@classmethod
	def _letters_only(cls, value: str) -> str:
		if not _NAME_RULE.match(value):
			raise ValueError("name must be at least 2 characters and contain only letters")
		return value.strip()

	@field_validator("password")
	@classmethod
	def _password_strength(cls, value: str) -> str:
		if not _PASSWORD_RULE.match(value):
			raise ValueError(
				"password must be at least 8 characters with 1 uppercase, 1 lowercase, and 1 number"
			)
		return value


class LoginRequest(APIModel):
	email: EmailStr
	password: str = Field(min_length=1)


class RefreshRequest(APIModel):
	refresh_token: str = Field(min_length=1)


class UserRead(APIModel):
	id: uuid.UUID
	name: str
	email: str
	role: UserRoleEnum
	location: str
	created_at: datetime


class TokenResponse(APIModel):
	access_token: str
	refresh_token: str
	token_type: str = "bearer"
	user: UserRead


class AccessTokenResponse(APIModel):
	access_token: str
	token_type: str = "bearer"


class PartyRead(APIModel):
	"""Counterparty identity embedded in listings and orders."""

	id: uuid.UUID
	name: str
	email: str
	location: str | None = None
