"""Storefront: SQLAlchemy models."""
from storefront.models.catalog import Product
from storefront.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory, PaymentMethod, PaymentStatus
from storefront.models.quotation import Quotation, QuotationItem, QuotationStatus
from storefront.models.rbac import AuditLog
from storefront.models.tenant import PaymentTerm, Tenant, User, UserRoleEnum

__all__ = [
    "Tenant", "User", "UserRoleEnum", "PaymentTerm",
    "Product",
    "Quotation", "QuotationItem", "QuotationStatus",
    "Order", "OrderItem", "OrderStatus", "OrderStatusHistory", "PaymentMethod", "PaymentStatus",
    "AuditLog",
]
