"""
Storefront: FastAPI ASGI entry point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.v1.router import api_router
from storefront.config import get_settings
from storefront.core.auth_middleware import JWTAuthMiddleware
from storefront.core.exceptions import StorefrontError
from storefront.core.logging import setup_logging
from storefront.core.rate_limit import RateLimitMiddleware
from storefront.core.responses import error_response

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup/shutdown."""
    logger.info("Storefront API starting (%s)", settings.ENVIRONMENT)
    yield
    from storefront.db.session import engine

    await engine.dispose()


app = FastAPI(
    title="Storefront",
    description="Hardware-store quotations, approvals and orders",
    version="0.1.0",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)
# Added first so it runs inside JWTAuthMiddleware and sees request.state.user.
if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(RateLimitMiddleware)
app.add_middleware(JWTAuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Typed domain errors are surfaced verbatim in the standard envelope."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    field_errors = [{"field": exc.field, "message": exc.message}] if exc.field else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.error_code, exc.message, field_errors=field_errors, meta=exc.details or None),
    )


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    """Health check for load balancers and Docker."""
    return {"status": "ok", "service": "storefront"}
