import os

# Settings are read at import time; give the app a throwaway environment.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_BACKEND", "local")

from typing import AsyncGenerator, Dict, Iterable, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from photo_intake.auth.models import User, UserSchool
from photo_intake.auth.security import create_access_token, hash_password
from photo_intake.core.exceptions import ExternalServiceError
from photo_intake.core.models import Photo, Team
from photo_intake.db.session import Base, get_db
from photo_intake.main import app
from photo_intake.services.drive import get_drive_client
from photo_intake.services.storage import LocalStorage, get_storage


ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "StrongPass123"


class FakeDrive:
    """Stands in for DriveClient; records uploads and can be told to fail."""

    def __init__(self) -> None:
        self.uploads: List[Dict] = []
        self.folders: List[str] = []
        self.fail_upload = False

    async def resolve_school_folder(self, school_name: str) -> Optional[str]:
        self.folders.append(school_name)
        return f"folder-{school_name}"

    async def upload_file(self, data: bytes, file_name: str, mime_type: str, folder_id: Optional[str] = None) -> Dict:
        if self.fail_upload:
            raise ExternalServiceError("Failed to upload to Google Drive")
        self.uploads.append(
            {"data": data, "file_name": file_name, "mime_type": mime_type, "folder_id": folder_id}
        )
        return {"id": f"drive-{len(self.uploads)}", "webViewLink": "https://drive.example/view"}


@pytest.fixture()
async def engine(tmp_path):
    """Fresh file-backed SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture()
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "media"))


@pytest.fixture()
def fake_drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture()
async def client(session_maker, storage, fake_drive) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app with DB, storage and Drive overridden."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_drive_client] = lambda: fake_drive

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def make_admin(db: AsyncSession, email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD) -> User:
    admin = User(code="0001", role="admin", email=email, password_hash=hash_password(password))
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    return admin


async def make_team(db: AsyncSession, code: str, name: str, is_active: bool = True) -> Team:
    team = Team(code=code, name=name, is_active=is_active)
    db.add(team)
    await db.commit()
    await db.refresh(team)
    return team


async def make_client_user(
    db: AsyncSession,
    code: str,
    schools: Iterable[str],
    password: Optional[str] = None,
) -> User:
    user = User(
        code=code,
        role="client",
        password_hash=hash_password(password) if password else None,
    )
    db.add(user)
    await db.flush()
    for school_code in schools:
        db.add(UserSchool(user_id=user.id, school_code=school_code))
    await db.commit()
    await db.refresh(user)
    return user


async def make_photo(
    db: AsyncSession,
    school_code: str,
    user_id: Optional[int] = None,
    file_path: Optional[str] = None,
    status: str = "pending",
    migrated: bool = False,
) -> Photo:
    photo = Photo(
        school_code=school_code,
        user_id=user_id,
        file_name="pic.jpg",
        file_path=file_path or f"{school_code}/missing-pic.jpg",
        file_size=3,
        mime_type="image/jpeg",
        status=status,
        migrated_to_external=migrated,
        external_id="drive-existing" if migrated else None,
        photo_metadata={},
    )
    db.add(photo)
    await db.commit()
    await db.refresh(photo)
    return photo


def admin_token(user_id: int = 1) -> str:
    return create_access_token(subject={"sub": str(user_id), "code": "0001", "role": "admin", "email": ADMIN_EMAIL})


def client_token(user_id: int, school_code: str, code: str = "1000") -> str:
    return create_access_token(
        subject={"sub": str(user_id), "code": code, "role": "client", "school_code": school_code}
    )
