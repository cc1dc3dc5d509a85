"""structlog setup and per-request context (request id, caller, route)."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from agrochain.auth.dependencies import extract_identity_hint
from agrochain.config import LogFormat, Settings, get_settings

REQUEST_ID_HEADER = "x-request-id"

_QUIET_PATHS = frozenset({"/health", "/health/ready"})
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "passlib")
_configured = False


def configure_structured_logging(settings: Settings | None = None) -> None:
	"""Route stdlib and structlog output through one renderer; idempotent."""
	global _configured
	if _configured:
		return

	settings = settings or get_settings()
	log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

	if settings.log_format == LogFormat.json:
		renderer: Any = structlog.processors.JSONRenderer()
		logging.basicConfig(level=log_level, format="%(message)s")
	else:
		renderer = structlog.dev.ConsoleRenderer()
		logging.basicConfig(level=log_level)

	# Library chatter stays at WARNING unless we are debugging.
	for name in _NOISY_LOGGERS:
		logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

	structlog.configure(
		processors=[
			structlog.contextvars.merge_contextvars,
			structlog.processors.add_log_level,
			structlog.processors.TimeStamper(fmt="iso", utc=True),
			structlog.processors.format_exc_info,
			renderer,
		],
		wrapper_class=structlog.make_filtering_bound_logger(log_level),
		logger_factory=structlog.PrintLoggerFactory(),
		cache_logger_on_first_use=True,
	)
	_configured = True


def _elapsed_ms(started: float) -> float:
	return round((time.perf_counter() - started) * 1000.0, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Tag every log line of a request with its id and caller; one summary line per request.

	Service loggers (``agrochain.orders`` and friends) pick the context up via
	``merge_contextvars``, so an ``order_placed`` event can be traced back to
	the HTTP call and the buyer that issued it.
	"""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
		request.state.request_id = request_id

		structlog.contextvars.clear_contextvars()
		structlog.contextvars.bind_contextvars(
			request_id=request_id,
			caller=extract_identity_hint(request),
			route=f"{request.method} {request.url.path}",
		)

		logger = structlog.get_logger("agrochain.request")
		started = time.perf_counter()

		try:
			response = await call_next(request)
		except Exception as exc:
			logger.exception("http_request_failed", duration_ms=_elapsed_ms(started), error=str(exc))
			raise

		response.headers[REQUEST_ID_HEADER] = request_id
		log = logger.debug if request.url.path in _QUIET_PATHS else logger.info
		log("http_request", status_code=response.status_code, duration_ms=_elapsed_ms(started))
		return response
