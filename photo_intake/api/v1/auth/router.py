from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.dependencies import get_current_principal
from photo_intake.auth.schemas import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    Principal,
    PrincipalResponse,
    VerifyResponse,
)
from photo_intake.auth.services import login as login_user
from photo_intake.core.exceptions import ServiceError
from photo_intake.db.session import get_db

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    try:
        return await login_user(db, payload)
    except ServiceError as e:
        if e.status_code >= http_status.HTTP_500_INTERNAL_SERVER_ERROR:
            raise HTTPException(status_code=e.status_code, detail="Internal server error")
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/me", response_model=PrincipalResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> PrincipalResponse:
    return PrincipalResponse(**principal.to_dict())


@router.get("/verify", response_model=VerifyResponse)
async def verify(principal: Principal = Depends(get_current_principal)) -> VerifyResponse:
    return VerifyResponse(valid=True, user=PrincipalResponse(**principal.to_dict()))


@router.post("/logout", response_model=LogoutResponse)
async def logout() -> LogoutResponse:
    # Tokens are stateless; the client discards its copy
    return LogoutResponse(success=True, message="Logged out successfully")
