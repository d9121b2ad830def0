from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.rbac import require_admin
from photo_intake.auth.schemas import Principal
from photo_intake.core.exceptions import ServiceError
from photo_intake.core.schemas import MessageResponse
from photo_intake.db.session import get_db

from .schemas import (
    TeamCreate,
    TeamListResponse,
    TeamMutationResponse,
    TeamUpdate,
)
from . import service

router = APIRouter(
    prefix="/api/v1/teams",
    tags=["teams"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=TeamListResponse)
async def list_teams(db: AsyncSession = Depends(get_db)) -> TeamListResponse:
    teams = await service.list_teams(db)
    return TeamListResponse(teams=teams, total=len(teams))


@router.post(
    "",
    response_model=TeamMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_team(
    payload: TeamCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
) -> TeamMutationResponse:
    try:
        team = await service.create_team(db, payload, created_by=principal.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return TeamMutationResponse(success=True, team=team, message="Team created successfully")


@router.put("/{team_id}", response_model=TeamMutationResponse)
async def update_team(
    team_id: int,
    payload: TeamUpdate,
    db: AsyncSession = Depends(get_db),
) -> TeamMutationResponse:
    try:
        team = await service.update_team(db, team_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return TeamMutationResponse(success=True, team=team, message="Team updated successfully")


@router.delete("/{team_id}", response_model=MessageResponse)
async def delete_team(
    team_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        await service.delete_team(db, team_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(success=True, message="Team deleted successfully")
