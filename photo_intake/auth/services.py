import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.models import User, UserSchool
from photo_intake.auth.schemas import LoginRequest, LoginResponse, Principal, PrincipalResponse
from photo_intake.auth.security import (
    create_access_token,
    default_password,
    is_valid_code,
    verify_password,
)
from photo_intake.core.enums import UserRole
from photo_intake.core.exceptions import Unauthorized, ValidationError
from photo_intake.core.models import Team

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _issue(principal: Principal) -> LoginResponse:
    token = create_access_token(
        subject={
            "sub": str(principal.id),
            "code": principal.code,
            "role": principal.role,
            "school_code": principal.school_code,
            "email": principal.email,
        }
    )
    return LoginResponse(success=True, token=token, user=PrincipalResponse(**principal.to_dict()))


async def login_admin(db: AsyncSession, email: str, password: str) -> LoginResponse:
    result = await db.execute(
        select(User).where(
            func.lower(User.email) == email.lower(),
            User.role == UserRole.ADMIN.value,
        )
    )
    user = result.scalar_one_or_none()
    if not user or not user.password_hash or not verify_password(password, user.password_hash):
        logger.info("Admin login failed for %s", email.lower())
        raise Unauthorized(INVALID_CREDENTIALS)

    logger.info("Admin %s logged in", user.id)
    return _issue(Principal(id=user.id, code=user.code, role=user.role, email=user.email))


async def login_client(db: AsyncSession, school_code: str, user_code: str, password: str) -> LoginResponse:
    if not is_valid_code(school_code):
        raise ValidationError("Invalid School ID format (4 digits)")
    if not is_valid_code(user_code):
        raise ValidationError("Invalid User ID format (4 digits)")

    result = await db.execute(
        select(User).where(User.code == user_code, User.role == UserRole.CLIENT.value)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise Unauthorized(INVALID_CREDENTIALS)

    link = await db.execute(
        select(UserSchool.id).where(
            UserSchool.user_id == user.id,
            UserSchool.school_code == school_code,
        )
    )
    if link.scalar_one_or_none() is None:
        raise Unauthorized("User is not authorized for this school")

    team = await db.execute(select(Team.is_active).where(Team.code == school_code))
    if team.scalar_one_or_none() is not True:
        raise Unauthorized("School is inactive")

    if user.password_hash:
        valid = verify_password(password, user.password_hash)
    else:
        valid = password == default_password(user.code)
    if not valid:
        logger.info("Client login failed for user %s at school %s", user_code, school_code)
        raise Unauthorized(INVALID_CREDENTIALS)

    logger.info("Client %s logged in to school %s", user.id, school_code)
    return _issue(Principal(id=user.id, code=user.code, role=user.role, school_code=school_code))


async def login(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    if not payload.type:
        raise ValidationError("Login type is required")

    if payload.type == UserRole.ADMIN.value:
        if not payload.email or not payload.password:
            raise ValidationError("Email and password are required")
        return await login_admin(db, str(payload.email), payload.password)

    if not payload.school_code or not payload.user_code or not payload.password:
        raise ValidationError("School ID, User ID, and password are required")
    return await login_client(db, payload.school_code, payload.user_code, payload.password)
