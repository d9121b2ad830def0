from dataclasses import asdict, dataclass
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


@dataclass(frozen=True)
class Principal:
    """Authenticated identity derived from a verified token. Never persisted."""

    id: int
    code: Optional[str]
    role: str
    school_code: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class LoginRequest(BaseModel):
    """Admin: email + password. Client: schoolCode + userCode + password."""

    type: Optional[Literal["admin", "client"]] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    school_code: Optional[str] = Field(None, alias="schoolCode")
    user_code: Optional[str] = Field(None, alias="userCode")

    model_config = {"populate_by_name": True}


class PrincipalResponse(BaseModel):
    id: int
    code: Optional[str] = None
    role: str
    school_code: Optional[str] = None
    email: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: PrincipalResponse


class VerifyResponse(BaseModel):
    valid: bool
    user: PrincipalResponse


class LogoutResponse(BaseModel):
    success: bool
    message: str
