"""Course domain Pydantic V2 schemas.

Covers the course catalogue, owner-side course management and the syllabus
link. Follows RORO: separate request models from response models.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.enums import (
    CourseCategory,
    CourseLanguage,
    CourseStatus,
    CourseType,
    DeliveryType,
    InstitutionType,
    PromotionLevel,
    SessionType,
    Weekday,
)
from app.reviews.schemas import RatingSummaryResponse, ReviewResponse

_LOCATION_TYPES = {CourseType.OFFLINE, CourseType.HYBRID}


class CourseSort(str, enum.Enum):
    RELEVANCE = "relevance"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    RATING = "rating"
    NEWEST = "newest"
    START_DATE = "start-date"
    POPULARITY = "popularity"


# ---------------------------------------------------------------------------
# Nested value objects
# ---------------------------------------------------------------------------


class FacultyMember(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    qualification: str | None = Field(default=None, max_length=200)
    experience: str | None = Field(default=None, max_length=100)
    subject: str | None = Field(default=None, max_length=100)


class SyllabusTopic(BaseModel):
    topic: str = Field(min_length=1, max_length=200)
    subtopics: list[str] = Field(default_factory=list)
    duration: str | None = Field(default=None, max_length=50)


class ScheduleSession(BaseModel):
    start_time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    end_time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    subject: str | None = Field(default=None, max_length=100)
    faculty: str | None = Field(default=None, max_length=120)
    type: SessionType = SessionType.LECTURE


class ScheduleDay(BaseModel):
    day: Weekday
    sessions: list[ScheduleSession] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Course request schemas
# ---------------------------------------------------------------------------


class CreateCourseRequest(BaseModel):
    """Course creation payload.

    Sent as the JSON ``payload`` field of a multipart form next to the
    optional ``syllabus_file``; decoded once, rejected whole on any error.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    original_price: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2,
        description="Defaults to price.",
    )
    discount: int = Field(default=0, ge=0, le=100)
    duration: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
    enrollment_deadline: date | None = Field(
        default=None, description="Replaces start_date as the enrollment cut-off when set."
    )
    course_category: CourseCategory
    subjects: list[str] = Field(default_factory=list)
    course_languages: list[CourseLanguage] = Field(default_factory=lambda: [CourseLanguage.ENGLISH])
    course_types: list[CourseType] = Field(default_factory=lambda: [CourseType.ONLINE], min_length=1)
    delivery_type: DeliveryType = DeliveryType.LIVE
    faculty: list[FacultyMember] = Field(default_factory=list)
    syllabus_details: list[SyllabusTopic] = Field(default_factory=list)
    weekly_schedule: list[ScheduleDay] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    search_keywords: list[str] = Field(default_factory=list)
    cover_image: str | None = Field(default=None, max_length=500)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    address: str | None = Field(default=None, max_length=500)
    max_students: int = Field(default=0, ge=0, description="0 means unlimited.")
    promotion_level: PromotionLevel = PromotionLevel.NONE
    is_published: bool | None = Field(
        default=None,
        description="false keeps the course a draft even for verified institutions.",
    )

    @model_validator(mode="after")
    def _check_schedule_and_location(self) -> CreateCourseRequest:
        if self.start_date >= self.end_date:
            raise ValueError("end_date must be after start_date.")
        if self.enrollment_deadline and self.enrollment_deadline > self.end_date:
            raise ValueError("enrollment_deadline cannot be after end_date.")
        if _LOCATION_TYPES.intersection(self.course_types):
            missing = [f for f in ("city", "state", "address") if not getattr(self, f)]
            if missing:
                raise ValueError(
                    f"{', '.join(missing)} required for offline or hybrid courses."
                )
        return self


class UpdateCourseRequest(BaseModel):
    """Partial update of descriptive fields.

    Publication, status, promotion and derived counters have their own
    endpoints and are not accepted here.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    original_price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    discount: int | None = Field(default=None, ge=0, le=100)
    duration: str | None = Field(default=None, min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    enrollment_deadline: date | None = None
    course_category: CourseCategory | None = None
    subjects: list[str] | None = None
    course_languages: list[CourseLanguage] | None = None
    course_types: list[CourseType] | None = Field(default=None, min_length=1)
    delivery_type: DeliveryType | None = None
    faculty: list[FacultyMember] | None = None
    syllabus_details: list[SyllabusTopic] | None = None
    weekly_schedule: list[ScheduleDay] | None = None
    tags: list[str] | None = None
    search_keywords: list[str] | None = None
    cover_image: str | None = Field(default=None, max_length=500)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    address: str | None = Field(default=None, max_length=500)
    max_students: int | None = Field(default=None, ge=0)


class PublishCourseRequest(BaseModel):
    is_published: bool


class PromoteCourseRequest(BaseModel):
    promotion_level: PromotionLevel


class CloseCourseRequest(BaseModel):
    status: CourseStatus = Field(description="archived or cancelled; both are terminal.")

    @field_validator("status")
    @classmethod
    def _terminal_only(cls, v: CourseStatus) -> CourseStatus:
        if v not in (CourseStatus.ARCHIVED, CourseStatus.CANCELLED):
            raise ValueError("status must be archived or cancelled.")
        return v


# ---------------------------------------------------------------------------
# Course response schemas
# ---------------------------------------------------------------------------


class InstitutionBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    institution_name: str | None = None
    institution_type: InstitutionType | None = None
    is_verified: bool


class CourseSummary(BaseModel):
    """Catalogue card."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    institution_id: UUID
    title: str
    price: float
    original_price: float
    discount: int
    duration: str
    start_date: date
    end_date: date
    course_category: CourseCategory
    course_types: list[CourseType]
    course_languages: list[CourseLanguage]
    city: str | None = None
    state: str | None = None
    cover_image: str
    promotion_level: PromotionLevel
    is_featured: bool
    average_rating: RatingSummaryResponse
    total_reviews: int
    current_enrollments: int
    max_students: int
    views: int
    shortlisted: int
    created_at: datetime
    institution: InstitutionBrief | None = None


class AdminAction(BaseModel):
    action: str
    reason: str | None = None
    action_by: UUID | None = None
    action_at: datetime | None = None


class CourseResponse(BaseModel):
    """Full course record as its owner (and admins) see it."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    institution_id: UUID
    title: str
    description: str
    price: float
    original_price: float
    discount: int
    duration: str
    start_date: date
    end_date: date
    enrollment_deadline: date | None = None
    course_category: CourseCategory
    subjects: list[str]
    course_languages: list[CourseLanguage]
    course_types: list[CourseType]
    delivery_type: DeliveryType
    faculty: list[FacultyMember]
    syllabus_details: list[SyllabusTopic]
    weekly_schedule: list[ScheduleDay]
    tags: list[str]
    cover_image: str
    has_syllabus: bool = False
    city: str | None = None
    state: str | None = None
    address: str | None = None
    is_published: bool
    status: CourseStatus
    promotion_level: PromotionLevel
    is_featured: bool
    admin_action: AdminAction | None = None
    max_students: int
    current_enrollments: int
    average_rating: RatingSummaryResponse
    total_reviews: int
    views: int
    shortlisted: int
    created_at: datetime
    updated_at: datetime


class CourseDetailResponse(BaseModel):
    course: CourseResponse
    institution: InstitutionBrief
    reviews: list[ReviewResponse]
    access: Literal["admin", "owner", "public"]


class SyllabusLinkResponse(BaseModel):
    url: str
    expires_in: int
