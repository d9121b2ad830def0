from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from photo_intake.db.session import Base


class User(Base):
    """Admin or client account. Clients reach schools only through UserSchool links."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # 4-digit external-facing user code; the column keeps its historical name
    code = Column("uuid", String(4), nullable=False, unique=True)
    role = Column(String(20), nullable=False)
    # Only admins log in by email; stored lower-case
    email = Column(String(255), nullable=True, unique=True)
    # Null means the default password P<code> is still in effect
    password_hash = Column(Text, nullable=True)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class UserSchool(Base):
    """Linking record between a user and a school (team) code."""

    __tablename__ = "user_schools"
    __table_args__ = (
        UniqueConstraint("user_id", "school_uuid", name="uq_user_school"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    school_code = Column("school_uuid", String(4), ForeignKey("teams.uuid", ondelete="CASCADE"), nullable=False)
    assigned_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
