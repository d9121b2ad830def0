from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.rbac import require_admin
from photo_intake.db.session import get_db

from .schemas import DashboardStats
from . import service

router = APIRouter(
    prefix="/api/v1/stats",
    tags=["stats"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=DashboardStats)
async def dashboard_stats(
    school_code: Optional[str] = Query(None, alias="schoolCode"),
    db: AsyncSession = Depends(get_db),
) -> DashboardStats:
    return await service.get_dashboard_stats(db, school_code=school_code)
