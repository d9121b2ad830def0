from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from photo_intake.db.session import Base


class Team(Base):
    """A school. Photos and user links reference it by its 4-digit code."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column("uuid", String(4), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
