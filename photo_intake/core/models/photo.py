from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String

from photo_intake.core.enums import PhotoStatus
from photo_intake.db.session import Base


class Photo(Base):
    """Uploaded photo awaiting or past moderation.

    status: pending -> approved | rejected. migrated_to_external / external_id are set
    only when the approved photo was mirrored to Google Drive.
    """

    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    school_code = Column("school_uuid", String(4), ForeignKey("teams.uuid"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default=PhotoStatus.PENDING.value, index=True)
    migrated_to_external = Column(Boolean, nullable=False, default=False)
    external_id = Column(String(255), nullable=True)
    # "metadata" is reserved on declarative classes
    photo_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Integer, nullable=True)
