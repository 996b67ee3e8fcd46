"""
Storefront: domain exceptions.

Services raise these; the API layer turns them into the standard
{data, error, meta} envelope via the handler registered in main.py.
"""
from typing import Any

from fastapi import status


class StorefrontError(Exception):
    """Base class for all typed domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "STOREFRONT_ERROR"

    def __init__(self, message: str, *, field: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or {}


class ValidationError(StorefrontError):
    """Missing items, blank decline reason, non-positive quantities."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} with identifier '{identifier}' not found",
            details={"resource": resource, "identifier": str(identifier)},
        )
        self.resource = resource


class ForbiddenError(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class InvalidTransitionError(StorefrontError):
    """Operation attempted from a state that does not permit it."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "INVALID_TRANSITION"

    def __init__(self, entity: str, current: str, action: str):
        super().__init__(
            f"Cannot {action} {entity} in status {current}",
            details={"entity": entity, "current_status": current, "action": action},
        )
        self.current = current
        self.action = action


class ProductUnavailableError(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "PRODUCT_UNAVAILABLE"

    def __init__(self, product_id: Any, name: str | None = None):
        label = f"'{name}' ({product_id})" if name else f"{product_id}"
        super().__init__(
            f"Product {label} is not available",
            details={"product_id": str(product_id)},
        )


class TransactionFailureError(StorefrontError):
    """Storage transaction aborted. Nothing was committed; safe to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "TRANSACTION_FAILED"

    def __init__(self, message: str = "The operation could not be completed, please retry"):
        super().__init__(message)
