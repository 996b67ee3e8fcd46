"""Storefront: Redis fixed-window rate limiting."""
import time
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.core.redis import get_redis, rate_limit_key
from storefront.core.responses import error_response

# Requests per minute
LIMITS = {
    "auth": 600,
    "default": 100,  # unauthenticated callers
}
WINDOW = 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        r = await get_redis()

        # request.state.user is only set by JWTAuthMiddleware for a verified token.
        user = getattr(request.state, "user", None)
        if user is not None:
            caller_id = str(user.id)
            limit_type = "auth"
        else:
            caller_id = request.client.host if request.client else "unknown"
            limit_type = "default"

        key = rate_limit_key(limit_type, caller_id)
        count = await r.incr(key)
        if count == 1:
            await r.expire(key, WINDOW)
        if count > LIMITS[limit_type]:
            return JSONResponse(
                status_code=429,
                content=error_response(
                    "RATE_LIMIT_EXCEEDED",
                    "Too many requests. Please slow down.",
                    meta={"limit": LIMITS[limit_type], "remaining": 0},
                ),
                headers={"Retry-After": str(WINDOW)},
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(LIMITS[limit_type])
        response.headers["X-RateLimit-Remaining"] = str(max(0, LIMITS[limit_type] - count))
        ttl = await r.ttl(key)
        response.headers["X-RateLimit-Reset"] = str(int(time.time()) + (ttl if ttl > 0 else WINDOW))
        return response
