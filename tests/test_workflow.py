"""End-to-end: admin sets up a school and a user, the user submits, the admin approves."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from photo_intake.auth.security import decode_token

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, bearer, make_admin


@pytest.mark.asyncio
async def test_submission_to_approval(client: AsyncClient, db_session: AsyncSession, fake_drive) -> None:
    await make_admin(db_session)

    login = await client.post(
        "/api/v1/auth/login",
        json={"type": "admin", "email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert login.status_code == 200
    admin = bearer(login.json()["token"])
    assert decode_token(login.json()["token"])["role"] == "admin"

    team = await client.post("/api/v1/teams", json={"name": "West High"}, headers=admin)
    assert team.status_code == 201
    school_code = team.json()["team"]["code"]

    created = await client.post(
        "/api/v1/users",
        json={"role": "client", "schools": [school_code]},
        headers=admin,
    )
    assert created.status_code == 201
    user_code = created.json()["user"]["code"]
    password = created.json()["generated_password"]
    assert password == f"P{user_code}"

    client_login = await client.post(
        "/api/v1/auth/login",
        json={"type": "client", "schoolCode": school_code, "userCode": user_code, "password": password},
    )
    assert client_login.status_code == 200
    client_token = client_login.json()["token"]
    assert decode_token(client_token)["role"] == "client"
    assert decode_token(client_token)["school_code"] == school_code

    upload = await client.post(
        "/api/v1/photos",
        files={"file": ("class.jpg", b"jpeg-bytes", "image/jpeg")},
        headers=bearer(client_token),
    )
    assert upload.status_code == 201
    photo = upload.json()["photo"]
    assert photo["status"] == "pending"
    assert photo["school_code"] == school_code

    # The client cannot moderate its own submission
    denied = await client.post(f"/api/v1/photos/{photo['id']}/approve", headers=bearer(client_token))
    assert denied.status_code == 403

    approved = await client.post(f"/api/v1/photos/{photo['id']}/approve", headers=admin)
    assert approved.status_code == 200
    assert approved.json()["photo"]["status"] == "approved"
    assert approved.json()["mirror_status"] == "uploaded"
    assert fake_drive.uploads[0]["data"] == b"jpeg-bytes"
    assert fake_drive.folders == ["West High"]

    listing = await client.get("/api/v1/photos", headers=bearer(client_token))
    assert [p["status"] for p in listing.json()["photos"]] == ["approved"]
