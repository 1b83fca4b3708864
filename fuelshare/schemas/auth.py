from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from fuelshare.models.user import UserRole


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)


class UserResponse(BaseModel):
    id: UUID
    username: str
    full_name: Optional[str]
    role: UserRole
    is_active: bool
    is_exempt: bool

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class RefreshRequest(BaseModel):
    refresh_token: str
