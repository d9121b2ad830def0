"""
Photo submission and moderation.

Approval is sequential with no retries: fetch from primary storage, resolve
the school's Drive folder, upload, then mark approved. Storage and Drive
failures inside approval are logged and absorbed; the photo is approved
regardless and only flagged as mirrored when the upload succeeded.
"""

import logging
import re
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.core.config import settings
from photo_intake.core.enums import MirrorStatus, PhotoStatus
from photo_intake.core.exceptions import (
    ExternalServiceError,
    NotFound,
    StorageError,
    ValidationError,
)
from photo_intake.core.models import Photo, Team
from photo_intake.services.drive import DriveClient
from photo_intake.services.storage import PhotoStorage

from .schemas import PhotoResponse

logger = logging.getLogger(__name__)

UNKNOWN_SCHOOL = "Unknown School"
UNCATEGORIZED_FOLDER = "Uncategorized"
DEFAULT_MIME_TYPE = "image/jpeg"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


@dataclass
class ApprovalResult:
    photo: PhotoResponse
    mirror_status: MirrorStatus
    mirror_error: Optional[str] = None


def _to_response(photo: Photo, school_name: Optional[str]) -> PhotoResponse:
    return PhotoResponse(
        id=photo.id,
        school_code=photo.school_code,
        school_name=school_name or UNKNOWN_SCHOOL,
        user_id=photo.user_id,
        file_name=photo.file_name,
        file_path=photo.file_path,
        file_size=photo.file_size or 0,
        mime_type=photo.mime_type,
        status=photo.status,
        migrated_to_external=bool(photo.migrated_to_external),
        external_id=photo.external_id,
        metadata=photo.photo_metadata or {},
        created_at=photo.created_at,
        approved_at=photo.approved_at,
        approved_by=photo.approved_by,
    )


def safe_file_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name) or "photo"


def build_storage_path(school_code: str, file_name: str) -> str:
    """<school>/<epoch-ms>-<random>-<sanitised name>; the random part keeps same-millisecond uploads apart."""
    stamp = int(time.time() * 1000)
    return f"{school_code}/{stamp}-{secrets.token_hex(4)}-{safe_file_name(file_name)}"


async def get_photo_with_school(db: AsyncSession, photo_id: int) -> Tuple[Photo, Optional[str]]:
    result = await db.execute(
        select(Photo, Team.name)
        .outerjoin(Team, Team.code == Photo.school_code)
        .where(Photo.id == photo_id)
    )
    row = result.first()
    if row is None:
        raise NotFound("Photo not found")
    return row[0], row[1]


async def list_photos(
    db: AsyncSession,
    school_code: Optional[str] = None,
    status: Optional[PhotoStatus] = None,
    migrated: Optional[bool] = None,
) -> List[PhotoResponse]:
    stmt = select(Photo, Team.name).outerjoin(Team, Team.code == Photo.school_code)
    if school_code:
        stmt = stmt.where(Photo.school_code == school_code)
    if status is not None:
        stmt = stmt.where(Photo.status == status.value)
    if migrated is not None:
        stmt = stmt.where(Photo.migrated_to_external.is_(migrated))
    stmt = stmt.order_by(Photo.created_at.desc(), Photo.id.desc())
    result = await db.execute(stmt)
    return [_to_response(photo, name) for photo, name in result.all()]


async def submit_photo(
    db: AsyncSession,
    storage: PhotoStorage,
    *,
    school_code: Optional[str],
    user_id: int,
    file_name: Optional[str],
    content_type: Optional[str],
    data: Optional[bytes],
) -> PhotoResponse:
    """Store the file, then record it as pending. The stored file is removed if the record cannot be written."""
    if not data:
        raise ValidationError("File is required")
    if len(data) > settings.max_upload_bytes:
        raise ValidationError(f"File is too large (limit {settings.max_upload_bytes} bytes)")
    if not school_code:
        raise ValidationError("School ID is required. Please log in again.")

    team = (await db.execute(select(Team).where(Team.code == school_code))).scalar_one_or_none()
    if team is None:
        raise ValidationError("Unknown School ID")

    original_name = file_name or "photo.jpg"
    mime_type = content_type or DEFAULT_MIME_TYPE
    path = build_storage_path(school_code, original_name)

    await storage.upload(path, data, mime_type)

    try:
        photo = Photo(
            school_code=school_code,
            user_id=user_id,
            file_name=original_name,
            file_path=path,
            file_size=len(data),
            mime_type=mime_type,
            status=PhotoStatus.PENDING.value,
            migrated_to_external=False,
            photo_metadata={
                "originalName": original_name,
                "size": len(data),
                "mimeType": mime_type,
                "publicUrl": storage.public_url(path),
            },
        )
        db.add(photo)
        await db.commit()
        await db.refresh(photo)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Photo record insert failed for %s: %s", path, e)
        try:
            await storage.remove(path)
        except StorageError:
            logger.error("Compensating delete failed; orphaned object at %s", path)
        raise StorageError("Failed to save photo") from e

    logger.info("Photo %s uploaded to school %s by user %s", photo.id, school_code, user_id)
    return _to_response(photo, team.name)


async def _mirror_to_drive(
    storage: PhotoStorage,
    drive: Optional[DriveClient],
    photo: Photo,
    school_name: Optional[str],
) -> Tuple[Optional[dict], Optional[str]]:
    """Fetch and upload; returns (drive file info or None, error text or None). Never raises."""
    if drive is None:
        return None, "Google Drive is not configured"

    try:
        data = await storage.download(photo.file_path)
    except StorageError as e:
        logger.error("Photo %s: fetch from storage failed, skipping Drive upload: %s", photo.id, e.message)
        return None, e.message

    try:
        folder_id = await drive.resolve_school_folder(school_name or UNCATEGORIZED_FOLDER)
        uploaded = await drive.upload_file(
            data,
            photo.file_name,
            photo.mime_type or DEFAULT_MIME_TYPE,
            folder_id,
        )
    except ExternalServiceError as e:
        logger.error("Photo %s: Drive upload failed: %s", photo.id, e.message)
        return None, e.message
    return uploaded, None


async def approve_photo(
    db: AsyncSession,
    storage: PhotoStorage,
    drive: Optional[DriveClient],
    photo_id: int,
    approved_by: int,
) -> ApprovalResult:
    photo, school_name = await get_photo_with_school(db, photo_id)
    if photo.status == PhotoStatus.REJECTED.value:
        raise ValidationError("Rejected photos cannot be approved")

    uploaded: Optional[dict] = None
    mirror_error: Optional[str] = None
    if photo.migrated_to_external:
        mirror_status = MirrorStatus.ALREADY_MIRRORED
    else:
        uploaded, mirror_error = await _mirror_to_drive(storage, drive, photo, school_name)
        mirror_status = MirrorStatus.UPLOADED if uploaded else MirrorStatus.SKIPPED_OR_FAILED

    photo.status = PhotoStatus.APPROVED.value
    if photo.approved_at is None:
        photo.approved_at = datetime.now(timezone.utc)
        photo.approved_by = approved_by
    if uploaded:
        photo.migrated_to_external = True
        photo.external_id = uploaded["id"]
        # Reassign so the JSON column is seen as changed
        photo.photo_metadata = {**(photo.photo_metadata or {}), "externalLink": uploaded.get("webViewLink", "")}
    await db.commit()
    await db.refresh(photo)

    if mirror_status == MirrorStatus.SKIPPED_OR_FAILED:
        logger.warning("Photo %s approved without Drive mirror: %s", photo.id, mirror_error)
    else:
        logger.info("Photo %s approved by %s (%s)", photo.id, approved_by, mirror_status.value)
    return ApprovalResult(
        photo=_to_response(photo, school_name),
        mirror_status=mirror_status,
        mirror_error=mirror_error,
    )


async def reject_photo(db: AsyncSession, photo_id: int, rejected_by: int) -> PhotoResponse:
    photo, school_name = await get_photo_with_school(db, photo_id)
    if photo.status != PhotoStatus.PENDING.value:
        raise ValidationError(f"Only pending photos can be rejected (status: {photo.status})")
    photo.status = PhotoStatus.REJECTED.value
    await db.commit()
    await db.refresh(photo)
    logger.info("Photo %s rejected by %s", photo.id, rejected_by)
    return _to_response(photo, school_name)


async def delete_photo(db: AsyncSession, storage: PhotoStorage, photo_id: int) -> None:
    photo, _ = await get_photo_with_school(db, photo_id)
    if photo.file_path:
        try:
            await storage.remove(photo.file_path)
        except StorageError:
            logger.warning("Photo %s: stored file %s could not be removed", photo.id, photo.file_path)
    await db.delete(photo)
    await db.commit()
    logger.info("Photo %s deleted", photo_id)
