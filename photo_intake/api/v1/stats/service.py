from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.models import User
from photo_intake.core.enums import PhotoStatus
from photo_intake.core.models import Photo, Team

from .schemas import DashboardStats

BYTES_PER_MB = 1024 * 1024


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


async def get_dashboard_stats(db: AsyncSession, school_code: Optional[str] = None) -> DashboardStats:
    """Photo counts honour the school filter; team and user totals are global."""
    photo_stmt = select(
        func.count(Photo.id),
        _count_where(Photo.status == PhotoStatus.PENDING.value),
        _count_where(Photo.status == PhotoStatus.APPROVED.value),
        _count_where(Photo.status == PhotoStatus.REJECTED.value),
        _count_where(Photo.migrated_to_external.is_(True)),
        func.coalesce(func.sum(Photo.file_size), 0),
    )
    if school_code:
        photo_stmt = photo_stmt.where(Photo.school_code == school_code)
    total, pending, approved, rejected, migrated, size = (await db.execute(photo_stmt)).one()

    total_teams = (await db.execute(select(func.count(Team.id)))).scalar_one()
    total_users = (await db.execute(select(func.count(User.id)))).scalar_one()

    return DashboardStats(
        total_photos=total,
        pending_photos=pending,
        approved_photos=approved,
        rejected_photos=rejected,
        migrated_photos=migrated,
        total_teams=total_teams,
        total_users=total_users,
        storage_used_mb=round(int(size) / BYTES_PER_MB, 2),
    )
