"""Domain error taxonomy shared by services and mapped to HTTP at the route edge."""

from __future__ import annotations

from fastapi import HTTPException, status


class MarketplaceError(Exception):
	"""Base class; ``code`` and ``status_code`` drive the HTTP mapping."""

	code = "marketplace_error"
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class NotFoundError(MarketplaceError, LookupError):
	code = "not_found"
	status_code = status.HTTP_404_NOT_FOUND


class InvalidRequestError(MarketplaceError, ValueError):
	code = "invalid_request"
	status_code = status.HTTP_400_BAD_REQUEST


class UnavailableError(MarketplaceError):
	code = "unavailable"
	status_code = status.HTTP_400_BAD_REQUEST


class InsufficientStockError(MarketplaceError):
	code = "insufficient_stock"
	status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(MarketplaceError, PermissionError):
	code = "not_authorized"
	status_code = status.HTTP_403_FORBIDDEN


class ConflictError(MarketplaceError):
	"""Concurrent write detected; safe to retry with a fresh read."""

	code = "conflict"
	status_code = status.HTTP_409_CONFLICT


class DuplicateError(MarketplaceError):
	code = "duplicate"
	status_code = status.HTTP_409_CONFLICT


class PersistenceFailureError(MarketplaceError):
	code = "persistence_failure"
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(exc: Exception, fallback: str) -> HTTPException:
	if isinstance(exc, MarketplaceError):
		return HTTPException(
			status_code=exc.status_code,
			detail={"error": exc.code, "message": exc.message},
		)
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail={"error": "internal_error", "message": fallback},
	)
