"""Storefront: JWT auth middleware, sets request.state.user."""
import logging
from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.api.deps import CurrentUser
from storefront.core.security import decode_token

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """Extract the bearer token from the Authorization header and populate request.state.user."""

    PUBLIC_PATHS = {
        "/health",
        "/api/v1/docs",
        "/api/v1/redoc",
        "/api/v1/openapi.json",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.user = None
        request.state.tenant_id = None

        path = request.url.path
        if path in self.PUBLIC_PATHS or path.startswith("/api/v1/docs") or path.startswith("/api/v1/redoc"):
            return await call_next(request)

        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            payload = decode_token(auth[7:].strip())
            if payload and payload.get("type") == "access":
                sub = payload.get("sub")
                tenant_id = payload.get("tenant_id")
                if sub and tenant_id:
                    try:
                        request.state.user = CurrentUser(
                            id=UUID(sub),
                            email=payload.get("email") or "unknown",
                            tenant_id=UUID(tenant_id),
                            role=payload.get("role", "CUSTOMER"),
                        )
                        request.state.tenant_id = tenant_id
                    except ValueError:
                        logger.warning("Malformed identity claims in token for path %s", path)
            else:
                logger.info("Rejected bearer token on %s", path)

        return await call_next(request)
