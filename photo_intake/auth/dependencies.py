import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from photo_intake.auth.schemas import Principal
from photo_intake.auth.security import decode_token

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields 401 rather than FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False, description="Session token from /auth/login")


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def principal_from_claims(payload: dict) -> Optional[Principal]:
    """Build a Principal from verified claims; None if required claims are missing or malformed."""
    role = payload.get("role")
    sub = payload.get("sub")
    if payload.get("type", "access") != "access" or not role or sub is None:
        return None
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        return None
    return Principal(
        id=user_id,
        code=payload.get("code"),
        role=role,
        school_code=payload.get("school_code"),
        email=payload.get("email"),
    )


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """Resolve the authenticated principal from the Authorization: Bearer header."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise _unauthorized("Missing authentication token")

    payload = decode_token(credentials.credentials)
    if payload is None:
        logger.warning("Rejected invalid or expired token")
        raise _unauthorized("Invalid or expired token")

    principal = principal_from_claims(payload)
    if principal is None:
        logger.warning("Rejected token with invalid claims")
        raise _unauthorized("Invalid or expired token")
    return principal
