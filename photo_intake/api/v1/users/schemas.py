from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from photo_intake.core.enums import UserRole


class UserCreate(BaseModel):
    role: UserRole
    schools: List[str] = Field(default_factory=list, description="School codes; full list of links")
    user_code: Optional[str] = Field(None, alias="userCode")
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=4)

    model_config = {"populate_by_name": True}


class UserUpdate(BaseModel):
    """schools, when given, replaces the user's links entirely."""

    role: Optional[UserRole] = None
    user_code: Optional[str] = Field(None, alias="userCode")
    email: Optional[EmailStr] = None
    schools: Optional[List[str]] = None

    model_config = {"populate_by_name": True}


class UserResponse(BaseModel):
    id: int
    code: str
    role: str
    email: Optional[str] = None
    schools: List[str] = Field(default_factory=list)
    created_by: Optional[int] = None
    created_at: datetime


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int


class UserCreateResponse(BaseModel):
    success: bool
    user: UserResponse
    generated_password: str
    message: str


class UserUpdateResponse(BaseModel):
    success: bool
    user: UserResponse
    message: str
