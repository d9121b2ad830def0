from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class TeamCreate(BaseModel):
    name: str = Field(..., max_length=255)
    is_active: bool = True


class TeamUpdate(BaseModel):
    """code is generated and not editable."""

    name: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None


class TeamMember(BaseModel):
    id: int
    code: str
    role: str


class TeamResponse(BaseModel):
    id: int
    code: str
    name: str
    is_active: bool
    created_by: Optional[int] = None
    created_at: datetime
    users: List[TeamMember] = Field(default_factory=list)

    class Config:
        from_attributes = True


class TeamListResponse(BaseModel):
    teams: List[TeamResponse]
    total: int


class TeamMutationResponse(BaseModel):
    success: bool
    team: TeamResponse
    message: str
