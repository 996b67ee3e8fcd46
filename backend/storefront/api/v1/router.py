"""Storefront: API v1 router aggregation."""
from fastapi import APIRouter

from storefront.api.v1.endpoints import orders, quotations

api_router = APIRouter()

api_router.include_router(quotations.router, prefix="/quotations", tags=["quotations"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
