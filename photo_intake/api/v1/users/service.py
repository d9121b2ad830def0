import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.models import User, UserSchool
from photo_intake.auth.security import default_password, hash_password, is_valid_code
from photo_intake.core.enums import UserRole
from photo_intake.core.exceptions import Forbidden, NotFound, ValidationError
from photo_intake.core.models import Photo, Team

from .schemas import UserCreate, UserResponse, UserUpdate

logger = logging.getLogger(__name__)

FIRST_USER_CODE = 1000
USER_CODE_STEP = 5
MAX_CODE = 9999


def _to_response(user: User, schools: Sequence[str]) -> UserResponse:
    return UserResponse(
        id=user.id,
        code=user.code,
        role=user.role,
        email=user.email,
        schools=list(schools),
        created_by=user.created_by,
        created_at=user.created_at,
    )


def _dedupe(codes: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(c.strip() for c in codes if c and c.strip()))


def diff_school_links(current: Iterable[str], requested: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Return (to_add, to_remove) that turn `current` into `requested`; order follows the inputs."""
    current = list(current)
    requested = list(requested)
    to_add = [c for c in requested if c not in current]
    to_remove = [c for c in current if c not in requested]
    return to_add, to_remove


async def _schools_by_user(db: AsyncSession, user_ids: Sequence[int]) -> Dict[int, List[str]]:
    if not user_ids:
        return {}
    rows = await db.execute(
        select(UserSchool.user_id, UserSchool.school_code)
        .where(UserSchool.user_id.in_(user_ids))
        .order_by(UserSchool.id)
    )
    links: Dict[int, List[str]] = defaultdict(list)
    for user_id, school_code in rows.all():
        links[user_id].append(school_code)
    return links


async def _ensure_schools_exist(db: AsyncSession, codes: Sequence[str]) -> None:
    if not codes:
        return
    result = await db.execute(select(Team.code).where(Team.code.in_(codes)))
    found = set(result.scalars().all())
    missing = [c for c in codes if c not in found]
    if missing:
        raise ValidationError(f"Invalid School IDs provided: {', '.join(missing)}")


async def next_user_code(db: AsyncSession) -> str:
    """Highest existing code + 5, never below 1000."""
    result = await db.execute(select(User.code))
    numeric = [int(c) for c in result.scalars().all() if c and c.isdigit()]
    candidate = max(max(numeric) + USER_CODE_STEP, FIRST_USER_CODE) if numeric else FIRST_USER_CODE
    if candidate > MAX_CODE:
        raise ValidationError("No user IDs left; supply userCode explicitly")
    return str(candidate)


async def _code_taken(db: AsyncSession, code: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(User.id).where(User.code == code)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None


async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


async def list_users(db: AsyncSession, school_code: Optional[str] = None) -> List[UserResponse]:
    stmt = select(User).order_by(User.code)
    if school_code:
        stmt = stmt.where(
            User.id.in_(select(UserSchool.user_id).where(UserSchool.school_code == school_code))
        )
    users = (await db.execute(stmt)).scalars().all()
    links = await _schools_by_user(db, [u.id for u in users])
    return [_to_response(u, links.get(u.id, [])) for u in users]


async def create_user(db: AsyncSession, payload: UserCreate, created_by: int) -> Tuple[UserResponse, str]:
    """Create a user and one link per distinct school. Returns (user, initial password)."""
    schools = _dedupe(payload.schools)
    if payload.role == UserRole.CLIENT and not schools:
        raise ValidationError("At least one School ID and role are required")
    await _ensure_schools_exist(db, schools)

    if payload.user_code:
        code = payload.user_code.strip()
        if not is_valid_code(code):
            raise ValidationError("Invalid User ID format (4 digits)")
    else:
        code = await next_user_code(db)
    if await _code_taken(db, code):
        raise ValidationError("User code already exists")

    email = str(payload.email).lower() if payload.email else None
    if email and await _email_taken(db, email):
        raise ValidationError("Email already exists")

    password = payload.password or default_password(code)
    try:
        user = User(
            code=code,
            role=payload.role.value,
            email=email,
            password_hash=hash_password(password),
            created_by=created_by,
        )
        db.add(user)
        await db.flush()
        for school_code in schools:
            db.add(UserSchool(user_id=user.id, school_code=school_code, assigned_by=created_by))
        await db.commit()
        await db.refresh(user)
    except IntegrityError as e:
        await db.rollback()
        raise ValidationError("User code already exists") from e

    logger.info("User %s (%s) created by %s with %d school link(s)", user.code, user.role, created_by, len(schools))
    return _to_response(user, schools), password


async def sync_school_links(
    db: AsyncSession,
    user_id: int,
    requested: Sequence[str],
    assigned_by: int,
) -> List[str]:
    """Make the user's links equal `requested`; links present in both are left untouched."""
    requested = _dedupe(requested)
    current = (
        await db.execute(
            select(UserSchool.school_code).where(UserSchool.user_id == user_id).order_by(UserSchool.id)
        )
    ).scalars().all()
    to_add, to_remove = diff_school_links(current, requested)
    await _ensure_schools_exist(db, to_add)

    if to_remove:
        await db.execute(
            delete(UserSchool).where(
                UserSchool.user_id == user_id,
                UserSchool.school_code.in_(to_remove),
            )
        )
    for school_code in to_add:
        db.add(UserSchool(user_id=user_id, school_code=school_code, assigned_by=assigned_by))

    if to_add or to_remove:
        logger.info("User %s school links: +%s -%s", user_id, to_add, to_remove)
    return [c for c in current if c not in to_remove] + to_add


async def update_user(db: AsyncSession, user_id: int, payload: UserUpdate, updated_by: int) -> UserResponse:
    user = await get_user_or_404(db, user_id)
    if user.id == updated_by and payload.role is not None and payload.role != UserRole.ADMIN:
        raise Forbidden("You cannot remove your own admin role")

    if payload.user_code is not None:
        code = payload.user_code.strip()
        if not is_valid_code(code):
            raise ValidationError("Invalid User ID format (4 digits)")
        if await _code_taken(db, code, exclude_id=user.id):
            raise ValidationError("User code already exists")
        user.code = code
    if payload.email is not None:
        email = str(payload.email).lower()
        if await _email_taken(db, email, exclude_id=user.id):
            raise ValidationError("Email already exists")
        user.email = email
    if payload.role is not None:
        user.role = payload.role.value

    if payload.schools is not None:
        schools = await sync_school_links(db, user.id, payload.schools, assigned_by=updated_by)
    else:
        schools = (await _schools_by_user(db, [user.id])).get(user.id, [])

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ValidationError("User update conflicts with an existing record") from e
    await db.refresh(user)
    logger.info("User %s updated by %s", user.id, updated_by)
    return _to_response(user, schools)


async def delete_user(db: AsyncSession, user_id: int, deleted_by: int) -> None:
    if user_id == deleted_by:
        raise ValidationError("You cannot delete your own account")
    user = await get_user_or_404(db, user_id)

    await db.execute(update(Photo).where(Photo.user_id == user.id).values(user_id=None))
    await db.execute(delete(UserSchool).where(UserSchool.user_id == user.id))
    await db.delete(user)
    await db.commit()
    logger.info("User %s deleted by %s", user_id, deleted_by)
