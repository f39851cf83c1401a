"""Profile schemas: the caller's own account and public institution pages."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from shared.constants import Role

from app.models.enums import InstitutionType


class ContactPerson(BaseModel):
    name: str | None = Field(default=None, max_length=120)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)


class PostalAddress(BaseModel):
    line1: str | None = Field(default=None, max_length=200)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    pincode: str | None = Field(default=None, max_length=12)


class UpdateProfileRequest(BaseModel):
    """Name and email for everyone; the rest is accepted from institutions only."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=120)
    email: EmailStr | None = None
    institution_name: str | None = Field(default=None, min_length=1, max_length=200)
    institution_type: InstitutionType | None = None
    contact_person: ContactPerson | None = None
    address: PostalAddress | None = None
    website: str | None = Field(default=None, max_length=300)
    description: str | None = Field(default=None, max_length=2000)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: Role
    institution_name: str | None = None
    institution_type: InstitutionType | None = None
    contact_person: ContactPerson | None = None
    address: PostalAddress | None = None
    website: str | None = None
    description: str | None = None
    is_verified: bool
    is_active: bool
    verified_at: datetime | None = None
    last_login_at: datetime | None = None
    created_at: datetime


class InstitutionProfileResponse(BaseModel):
    """Public fields always; contact details only for the owner and admins."""

    id: UUID
    institution_name: str | None = None
    institution_type: InstitutionType | None = None
    is_verified: bool
    website: str | None = None
    description: str | None = None
    city: str | None = None
    state: str | None = None
    created_at: datetime
    name: str | None = None
    email: str | None = None
    contact_person: ContactPerson | None = None
    address: PostalAddress | None = None
    is_active: bool | None = None
    verified_at: datetime | None = None
    course_count: int = 0
