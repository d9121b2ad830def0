from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.rbac import require_admin
from photo_intake.auth.schemas import Principal
from photo_intake.core.exceptions import ServiceError
from photo_intake.core.schemas import MessageResponse
from photo_intake.db.session import get_db

from .schemas import (
    UserCreate,
    UserCreateResponse,
    UserListResponse,
    UserUpdate,
    UserUpdateResponse,
)
from . import service

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=UserListResponse)
async def list_users(
    school_code: Optional[str] = Query(None, alias="schoolCode", description="Only users linked to this school"),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    users = await service.list_users(db, school_code=school_code)
    return UserListResponse(users=users, total=len(users))


@router.post(
    "",
    response_model=UserCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
) -> UserCreateResponse:
    try:
        user, password = await service.create_user(db, payload, created_by=principal.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return UserCreateResponse(
        success=True,
        user=user,
        generated_password=password,
        message="User created successfully",
    )


@router.put("/{user_id}", response_model=UserUpdateResponse)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
) -> UserUpdateResponse:
    try:
        user = await service.update_user(db, user_id, payload, updated_by=principal.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return UserUpdateResponse(success=True, user=user, message="User updated successfully")


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
) -> MessageResponse:
    try:
        await service.delete_user(db, user_id, deleted_by=principal.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(success=True, message="User deleted successfully")
