"""Storefront: FastAPI dependencies (auth, DB, permissions)."""
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from storefront.db.session import get_db

# ── Permission keys ─────────────────────────────────────────────────────────
# Use these string constants everywhere, no raw strings in route files.
PERM_QUOTATIONS_READ = "quotations:read"
PERM_QUOTATIONS_WRITE = "quotations:write"
PERM_QUOTATIONS_REVIEW = "quotations:review"
PERM_ORDERS_READ = "orders:read"
PERM_ORDERS_MANAGE = "orders:manage"

# ── Role → permissions matrix ────────────────────────────────────────────────
_ADMIN_PERMS = {
    PERM_QUOTATIONS_READ,
    PERM_QUOTATIONS_REVIEW,
    PERM_ORDERS_READ,
    PERM_ORDERS_MANAGE,
}

_MANAGER_PERMS = set(_ADMIN_PERMS)

_CUSTOMER_PERMS = {
    PERM_QUOTATIONS_READ,
    PERM_QUOTATIONS_WRITE,
    PERM_ORDERS_READ,
}

PERMISSION_MATRIX: dict[str, set[str]] = {
    "ADMIN": _ADMIN_PERMS,
    "MANAGER": _MANAGER_PERMS,
    "CUSTOMER": _CUSTOMER_PERMS,
}


class CurrentUser:
    """User identity from the JWT, set on request.state by middleware."""

    def __init__(
        self,
        id: UUID,
        email: str,
        tenant_id: UUID,
        role: str,
    ):
        self.id = id
        self.email = email
        self.tenant_id = tenant_id
        self.role = role

    def has_permission(self, permission: str) -> bool:
        return permission in PERMISSION_MATRIX.get(self.role, set())


async def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user. Raise 401 if not logged in."""
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


def require_permission(permission: str):
    """Dependency factory: require specific RBAC permission."""

    async def _check(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
        if not user.has_permission(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: '{permission}' required. Your role: {user.role}",
            )
        return user

    return _check
