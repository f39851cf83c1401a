"""Admin schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shared.constants import Role

from app.models.enums import InstitutionType


class AdminStats(BaseModel):
    aspirant_count: int
    institution_count: int
    verified_institutions: int
    pending_institutions: int
    course_count: int
    published_courses: int
    pending_reviews: int


class AdminUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: Role
    institution_name: str | None = None
    institution_type: InstitutionType | None = None
    is_verified: bool
    is_active: bool
    verified_at: datetime | None = None
    verified_by: UUID | None = None
    last_login_at: datetime | None = None
    login_count: int
    created_at: datetime


class InstitutionOverview(AdminUserResponse):
    course_count: int = 0
    published_course_count: int = 0


class VerifyInstitutionRequest(BaseModel):
    is_verified: bool


class InstitutionStatusRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    is_active: bool
    reason: str | None = Field(default=None, max_length=500, description="Required when delisting.")


class InstitutionStatusResult(BaseModel):
    institution: AdminUserResponse
    suspended_courses: int


class UserStatusRequest(BaseModel):
    is_active: bool


class CoursePublicationRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    is_published: bool
    reason: str | None = Field(default=None, max_length=500, description="Required when suspending.")
