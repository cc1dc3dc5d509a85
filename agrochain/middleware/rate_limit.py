"""Redis-backed write rate limiting middleware."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from agrochain.auth.dependencies import extract_identity_hint
from agrochain.config import get_settings

_LIMITED_METHODS = frozenset({"POST", "PATCH", "PUT", "DELETE"})


class RateLimitMiddleware(BaseHTTPMiddleware):
	"""Per-identity quota on mutating API calls, counted with Redis INCR."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		if not self._is_limited(request):
			return await call_next(request)

		redis_client = getattr(request.app.state, "redis", None)
		if redis_client is None:
			return await call_next(request)

		quota = get_settings().rate_limit_writes_per_minute
		identity = extract_identity_hint(request)
		minute_bucket = datetime.now(UTC).strftime("%Y%m%d%H%M")
		key = f"ratelimit:writes:{identity}:{minute_bucket}"

		current = await redis_client.incr(key)
		if current == 1:
			await redis_client.expire(key, 65)

		if current > quota:
			return JSONResponse(
				status_code=429,
				content={
					"detail": {
						"error": "rate_limited",
						"message": "Write quota exceeded",
						"quota": quota,
					}
				},
			)

		return await call_next(request)

	@staticmethod
	def _is_limited(request: Request) -> bool:
		return request.method in _LIMITED_METHODS and request.url.path.startswith("/api/v1/")
