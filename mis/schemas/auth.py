import uuid
from datetime import datetime
from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional, List

from ..services.permissions import ROLES
from .common import normalize_choice


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    role: str = "operator"
    full_name: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v):
        return normalize_choice(v, ROLES, "role")


class UserSummary(BaseModel):
    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    role: str

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserSummary


class MeResponse(UserSummary):
    permissions: List[str]


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v):
        return normalize_choice(v, ROLES, "role")
