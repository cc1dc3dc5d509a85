"""JWT access/refresh token issuing and validation for marketplace users."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from jose import JWTError, jwt

from agrochain.config import get_settings

TokenType = Literal["access", "refresh"]


@dataclass(slots=True)
class AuthError(Exception):
	"""Structured authentication error for consistent mapping at the edge."""

	code: str
	detail: str
	status_code: int = 401


@dataclass(slots=True, frozen=True)
class TokenPair:
	access_token: str
	refresh_token: str
	token_type: str = "bearer"


def _encode(user_id: uuid.UUID | str, token_type: TokenType, ttl_minutes: int) -> str:
	settings = get_settings()
	issued = datetime.now(UTC)
	claims: dict[str, Any] = {
		"sub": str(user_id),
		"typ": token_type,
		"iat": int(issued.timestamp()),
		"exp": int((issued + timedelta(minutes=ttl_minutes)).timestamp()),
	}
	return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: uuid.UUID | str, expires_minutes: int | None = None) -> str:
	ttl = expires_minutes or get_settings().jwt_access_token_expire_minutes
	return _encode(user_id, "access", ttl)


def create_refresh_token(user_id: uuid.UUID | str, expires_minutes: int | None = None) -> str:
	ttl = expires_minutes or get_settings().jwt_refresh_token_expire_minutes
	return _encode(user_id, "refresh", ttl)


def issue_token_pair(user_id: uuid.UUID) -> TokenPair:
	return TokenPair(
		access_token=create_access_token(user_id),
		refresh_token=create_refresh_token(user_id),
	)


def decode_token(token: str, expected_type: TokenType | None = None) -> dict[str, Any]:
	settings = get_settings()
	try:
		payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
	except JWTError as exc:
		raise AuthError(code="token_invalid", detail="Invalid authentication token") from exc

	if expected_type is not None and payload.get("typ") != expected_type:
		raise AuthError(code="token_type_invalid", detail=f"Expected {expected_type} token")

	expires_at = payload.get("exp")
	if not isinstance(expires_at, int):
		raise AuthError(code="token_invalid", detail="Token expiration is missing")
	if datetime.now(UTC).timestamp() >= expires_at:
		raise AuthError(code="token_expired", detail="Authentication token has expired")

	return payload


def token_subject(token: str, expected_type: TokenType = "access") -> uuid.UUID:
	"""Decode ``token`` and return the user id it was issued for."""
	payload = decode_token(token, expected_type=expected_type)
	try:
		return uuid.UUID(str(payload["sub"]))
	except (KeyError, ValueError) as exc:
		raise AuthError(code="token_invalid", detail="Token subject is invalid") from exc
