from typing import Iterable, Optional

from fastapi import Depends, HTTPException, status

from photo_intake.auth.dependencies import get_current_principal
from photo_intake.auth.schemas import Principal
from photo_intake.core.enums import UserRole


def check_role(principal: Optional[Principal], allowed_roles: Iterable[str]) -> bool:
    if principal is None:
        return False
    return principal.role in set(allowed_roles)


def require_roles(*roles: str, message: str = "Forbidden"):
    """
    Dependency factory gating a route (or a whole router) on the principal's role.

    Example:
        APIRouter(dependencies=[Depends(require_roles("admin"))])
    """

    async def _checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not check_role(principal, roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
        return principal

    return _checker


require_admin = require_roles(UserRole.ADMIN.value, message="Admin access is required")
require_any_role = require_roles(UserRole.ADMIN.value, UserRole.CLIENT.value)


def resolve_school_scope(principal: Principal, requested: Optional[str]) -> Optional[str]:
    """
    School code a request may act on.

    Clients are pinned to the school in their token whatever they ask for;
    admins get the requested code (None means "all schools").
    """
    if principal.role == UserRole.CLIENT.value:
        if not principal.school_code:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Client session is not scoped to a school. Please log in again.",
            )
        return principal.school_code
    return requested or None
