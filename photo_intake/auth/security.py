import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from photo_intake.core.config import settings

CODE_PATTERN = re.compile(r"[0-9]{4}")


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # In case the stored hash is invalid/corrupted
        return False


def default_password(user_code: str) -> str:
    """Initial password handed out when an admin creates a user."""
    return f"P{user_code}"


def create_access_token(
    *, subject: Dict[str, Any], expires_hours: Optional[int] = None
) -> str:
    """Sign a session token; there is no refresh, expiry forces a new login."""
    if expires_hours is None:
        expires_hours = settings.access_token_expire_hours

    now = datetime.now(timezone.utc)
    to_encode = {k: v for k, v in subject.items() if v is not None}
    to_encode.update({"type": "access", "iat": now, "exp": now + timedelta(hours=expires_hours)})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Return verified claims, or None when the signature, expiry or format is bad."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def generate_code() -> str:
    """Random 4-digit code (1000-9999); callers check uniqueness."""
    return str(1000 + secrets.randbelow(9000))


def is_valid_code(value: Optional[str]) -> bool:
    return bool(value) and CODE_PATTERN.fullmatch(value) is not None
