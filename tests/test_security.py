"""Unit tests for token issuance/verification, password hashing and the role gate."""

import pytest

from photo_intake.auth.dependencies import principal_from_claims
from photo_intake.auth.rbac import check_role, resolve_school_scope
from photo_intake.auth.schemas import Principal
from photo_intake.auth.security import (
    create_access_token,
    decode_token,
    default_password,
    generate_code,
    hash_password,
    is_valid_code,
    verify_password,
)


def test_token_round_trips_claims() -> None:
    claims = {"sub": "7", "code": "1005", "role": "client", "school_code": "1000"}
    payload = decode_token(create_access_token(subject=claims))
    assert payload is not None
    for key, value in claims.items():
        assert payload[key] == value
    assert payload["type"] == "access"
    # Fixed 24h lifetime
    assert payload["exp"] - payload["iat"] == 24 * 3600


def test_expired_token_is_rejected() -> None:
    token = create_access_token(subject={"sub": "1", "role": "admin"}, expires_hours=-1)
    assert decode_token(token) is None


def test_tampered_token_is_rejected() -> None:
    token = create_access_token(subject={"sub": "1", "role": "client"})
    header, payload, signature = token.split(".")
    forged = ".".join([header, payload, signature[::-1]])
    assert decode_token(forged) is None
    assert decode_token("not-a-token") is None


def test_none_claims_are_omitted() -> None:
    payload = decode_token(create_access_token(subject={"sub": "1", "role": "admin", "school_code": None}))
    assert "school_code" not in payload


def test_principal_from_claims() -> None:
    principal = principal_from_claims({"sub": "3", "role": "client", "code": "1010", "school_code": "1000"})
    assert principal == Principal(id=3, code="1010", role="client", school_code="1000")
    assert principal_from_claims({"sub": "x", "role": "admin"}) is None
    assert principal_from_claims({"sub": "1"}) is None
    assert principal_from_claims({"sub": "1", "role": "admin", "type": "refresh"}) is None


def test_password_hashing() -> None:
    hashed = hash_password("P1000")
    assert hashed != "P1000"
    assert verify_password("P1000", hashed)
    assert not verify_password("P1001", hashed)


def test_verify_password_with_corrupt_hash() -> None:
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_default_password() -> None:
    assert default_password("1005") == "P1005"


def test_codes() -> None:
    for _ in range(50):
        code = generate_code()
        assert is_valid_code(code)
        assert 1000 <= int(code) <= 9999
    assert not is_valid_code("123")
    assert not is_valid_code("12a4")
    assert not is_valid_code(None)
    assert not is_valid_code("1000\n")
    assert not is_valid_code(" 1000")


@pytest.mark.parametrize(
    "role,allowed,expected",
    [
        ("admin", ["admin"], True),
        ("admin", ["admin", "client"], True),
        ("client", ["admin"], False),
        ("client", ["admin", "client"], True),
    ],
)
def test_check_role(role: str, allowed, expected: bool) -> None:
    assert check_role(Principal(id=1, code="1000", role=role), allowed) is expected


def test_check_role_without_principal() -> None:
    assert check_role(None, ["admin"]) is False


def test_client_school_scope_ignores_request() -> None:
    client = Principal(id=2, code="1000", role="client", school_code="1000")
    assert resolve_school_scope(client, "2000") == "1000"
    assert resolve_school_scope(client, None) == "1000"


def test_admin_school_scope_follows_request() -> None:
    admin = Principal(id=1, code="0001", role="admin")
    assert resolve_school_scope(admin, "2000") == "2000"
    assert resolve_school_scope(admin, None) is None
