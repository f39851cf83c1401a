"""Auth domain Pydantic V2 schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from shared.constants import Role

from app.models.enums import InstitutionType


class SignupRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    role: Role = Role.ASPIRANT
    institution_name: str | None = Field(default=None, max_length=200)
    institution_type: InstitutionType | None = None
    admin_code: str | None = Field(default=None, description="Required when role is admin.")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    role: Role | None = Field(default=None, description="Reject the login unless the account has this role.")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=6, max_length=128)


class SendOtpRequest(BaseModel):
    email: EmailStr
    name: str | None = Field(default=None, max_length=120)


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=4, max_length=10, pattern=r"^\d+$")


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: Role
    institution_name: str | None = None
    institution_type: InstitutionType | None = None
    is_verified: bool
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
