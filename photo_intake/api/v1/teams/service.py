import logging
from collections import defaultdict
from typing import Dict, List, Optional

from fastapi import status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.models import User, UserSchool
from photo_intake.auth.security import generate_code
from photo_intake.core.exceptions import Conflict, NotFound, ServiceError, ValidationError
from photo_intake.core.models import Photo, Team

from .schemas import TeamCreate, TeamMember, TeamResponse, TeamUpdate

logger = logging.getLogger(__name__)


def _to_response(team: Team, members: Optional[List[TeamMember]] = None) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        code=team.code,
        name=team.name,
        is_active=team.is_active,
        created_by=team.created_by,
        created_at=team.created_at,
        users=members or [],
    )


async def generate_team_code(db: AsyncSession, max_attempts: int = 20) -> str:
    """Random unused 4-digit school code; retries on collision."""
    for _ in range(max_attempts):
        code = generate_code()
        result = await db.execute(select(Team.id).where(Team.code == code))
        if result.scalar_one_or_none() is None:
            return code
    raise ServiceError("Could not generate unique school code", status.HTTP_500_INTERNAL_SERVER_ERROR)


async def get_team_or_404(db: AsyncSession, team_id: int) -> Team:
    team = await db.get(Team, team_id)
    if not team:
        raise NotFound("Team not found")
    return team


async def list_teams(db: AsyncSession) -> List[TeamResponse]:
    teams = (await db.execute(select(Team).order_by(Team.created_at.desc(), Team.id.desc()))).scalars().all()

    rows = await db.execute(
        select(UserSchool.school_code, User.id, User.code, User.role)
        .join(User, User.id == UserSchool.user_id)
        .order_by(User.code)
    )
    members: Dict[str, List[TeamMember]] = defaultdict(list)
    for school_code, user_id, user_code, role in rows.all():
        members[school_code].append(TeamMember(id=user_id, code=user_code, role=role))

    return [_to_response(t, members.get(t.code)) for t in teams]


async def create_team(db: AsyncSession, payload: TeamCreate, created_by: int) -> TeamResponse:
    name = payload.name.strip()
    if not name:
        raise ValidationError("School name is required")
    try:
        team = Team(
            code=await generate_team_code(db),
            name=name,
            is_active=payload.is_active,
            created_by=created_by,
        )
        db.add(team)
        await db.commit()
        await db.refresh(team)
    except IntegrityError as e:
        await db.rollback()
        raise Conflict("Failed to create team") from e

    logger.info("Team %s (%s) created by %s", team.code, team.name, created_by)
    return _to_response(team)


async def update_team(db: AsyncSession, team_id: int, payload: TeamUpdate) -> TeamResponse:
    if payload.name is None and payload.is_active is None:
        raise ValidationError("Nothing to update")
    team = await get_team_or_404(db, team_id)
    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("Team name is required")
        team.name = name
    if payload.is_active is not None:
        team.is_active = payload.is_active
    await db.commit()
    await db.refresh(team)
    logger.info("Team %s updated", team.code)
    return _to_response(team)


async def delete_team(db: AsyncSession, team_id: int) -> None:
    team = await get_team_or_404(db, team_id)

    # Photos must always reference an existing school
    used = await db.execute(select(Photo.id).where(Photo.school_code == team.code).limit(1))
    if used.scalar_one_or_none() is not None:
        raise ValidationError("Cannot delete school: it still has photos")

    await db.execute(delete(UserSchool).where(UserSchool.school_code == team.code))
    await db.delete(team)
    await db.commit()
    logger.info("Team %s deleted", team.code)
