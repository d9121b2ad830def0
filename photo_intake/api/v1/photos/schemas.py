from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from photo_intake.core.enums import MirrorStatus


class PhotoResponse(BaseModel):
    id: int
    school_code: str
    school_name: str
    user_id: Optional[int] = None
    file_name: str
    file_path: str
    file_size: int
    mime_type: Optional[str] = None
    status: str
    migrated_to_external: bool
    external_id: Optional[str] = None
    metadata: Dict[str, Any] = {}
    created_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None


class PhotoListResponse(BaseModel):
    photos: List[PhotoResponse]
    total: int


class PhotoUploadResponse(BaseModel):
    success: bool
    photo: PhotoResponse
    message: str


class PhotoApproveResponse(BaseModel):
    success: bool
    photo: PhotoResponse
    mirror_status: MirrorStatus
    mirror_error: Optional[str] = None
    message: str


class PhotoRejectResponse(BaseModel):
    success: bool
    photo: PhotoResponse
    message: str
