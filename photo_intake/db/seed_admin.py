"""
Seed script to create (or reset) the admin user.

Run once after init_db with env set:
  ADMIN_EMAIL=admin@example.com
  ADMIN_PASSWORD=YourSecurePassword

Creates users row with role "admin" and a generated user code; if the email
already exists the role and password are reset.
"""
import asyncio

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.api.v1.users.service import next_user_code
from photo_intake.auth.models import User
from photo_intake.auth.security import hash_password
from photo_intake.core.config import settings
from photo_intake.core.enums import UserRole
from photo_intake.db.session import AsyncSessionLocal


_login_email = TypeAdapter(EmailStr)


async def seed_admin(db: AsyncSession, email: str, password: str) -> User:
    # Same rules as the login form, or the seeded admin could never sign in
    try:
        email = _login_email.validate_python(email.strip()).lower()
    except PydanticValidationError as e:
        raise ValueError(f"ADMIN_EMAIL is not a valid login email: {email!r}") from e

    result = await db.execute(select(User).where(func.lower(User.email) == email))
    admin = result.scalar_one_or_none()
    if admin is None:
        admin = User(
            code=await next_user_code(db),
            role=UserRole.ADMIN.value,
            email=email,
            password_hash=hash_password(password),
        )
        db.add(admin)
        print("Created admin user:", email)
    else:
        admin.role = UserRole.ADMIN.value
        admin.password_hash = hash_password(password)
        print("Updated existing user to admin:", email)
    await db.commit()
    await db.refresh(admin)
    return admin


async def main() -> None:
    if not settings.admin_email or not settings.admin_password:
        raise SystemExit("ADMIN_EMAIL and ADMIN_PASSWORD must be set")
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db, settings.admin_email, settings.admin_password)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())
