"""Authentication schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.modules.users.models import UserRole


class LoginRequest(BaseModel):
    """Login request schema."""

    login: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User profile returned on login."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    login: str
    role: UserRole
    is_active: bool
    created_at: datetime


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse
