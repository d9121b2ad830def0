from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.rbac import require_admin, require_any_role, resolve_school_scope
from photo_intake.auth.schemas import Principal
from photo_intake.core.config import settings
from photo_intake.core.enums import MirrorStatus, PhotoStatus
from photo_intake.core.exceptions import ServiceError
from photo_intake.core.schemas import MessageResponse
from photo_intake.db.session import get_db
from photo_intake.services.drive import DriveClient, get_drive_client
from photo_intake.services.storage import PhotoStorage, get_storage

from .schemas import (
    PhotoApproveResponse,
    PhotoListResponse,
    PhotoRejectResponse,
    PhotoUploadResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/photos", tags=["photos"])


def _raise_http(e: ServiceError) -> None:
    if e.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        raise HTTPException(status_code=e.status_code, detail=e.message or "Internal server error")
    raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=PhotoListResponse)
async def list_photos(
    school_code: Optional[str] = Query(None, alias="schoolCode"),
    photo_status: Optional[PhotoStatus] = Query(None, alias="status"),
    migrated: Optional[bool] = Query(None, description="Filter on the Drive mirror flag"),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_any_role),
) -> PhotoListResponse:
    scope = resolve_school_scope(principal, school_code)
    photos = await service.list_photos(db, school_code=scope, status=photo_status, migrated=migrated)
    return PhotoListResponse(photos=photos, total=len(photos))


@router.post(
    "",
    response_model=PhotoUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_photo(
    file: Optional[UploadFile] = File(None, description="Captured photo"),
    school_code: Optional[str] = Form(None, alias="schoolCode", description="Required for admins; ignored for clients"),
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_storage),
    principal: Principal = Depends(require_any_role),
) -> PhotoUploadResponse:
    scope = resolve_school_scope(principal, school_code)
    # One byte past the limit is enough to reject an oversized file
    data = await file.read(settings.max_upload_bytes + 1) if file is not None else None
    try:
        photo = await service.submit_photo(
            db,
            storage,
            school_code=scope,
            user_id=principal.id,
            file_name=file.filename if file is not None else None,
            content_type=file.content_type if file is not None else None,
            data=data,
        )
    except ServiceError as e:
        _raise_http(e)
    return PhotoUploadResponse(success=True, photo=photo, message="Photo uploaded successfully")


@router.post("/{photo_id}/approve", response_model=PhotoApproveResponse)
async def approve_photo(
    photo_id: int,
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_storage),
    drive: Optional[DriveClient] = Depends(get_drive_client),
    principal: Principal = Depends(require_admin),
) -> PhotoApproveResponse:
    try:
        result = await service.approve_photo(db, storage, drive, photo_id, approved_by=principal.id)
    except ServiceError as e:
        _raise_http(e)
    if result.mirror_status == MirrorStatus.SKIPPED_OR_FAILED:
        message = "Photo approved (Drive upload skipped or failed)"
    else:
        message = "Photo approved and uploaded to Drive"
    return PhotoApproveResponse(
        success=True,
        photo=result.photo,
        mirror_status=result.mirror_status,
        mirror_error=result.mirror_error,
        message=message,
    )


@router.post("/{photo_id}/reject", response_model=PhotoRejectResponse)
async def reject_photo(
    photo_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
) -> PhotoRejectResponse:
    try:
        photo = await service.reject_photo(db, photo_id, rejected_by=principal.id)
    except ServiceError as e:
        _raise_http(e)
    return PhotoRejectResponse(success=True, photo=photo, message="Photo rejected")


@router.delete(
    "/{photo_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
async def delete_photo(
    photo_id: int,
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_storage),
) -> MessageResponse:
    try:
        await service.delete_photo(db, storage, photo_id)
    except ServiceError as e:
        _raise_http(e)
    return MessageResponse(success=True, message="Photo deleted successfully")
