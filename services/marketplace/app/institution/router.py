"""Institution dashboard router — the caller's own courses, reviews and enrollments."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.dependencies import require_role
from shared.constants import Role
from shared.models.envelope import Envelope
from shared.models.user import CurrentUser

from app.courses.schemas import CourseResponse
from app.database import get_db
from app.enrollments.schemas import EnrollmentResponse
from app.institution import controller
from app.institution.schemas import InstitutionAnalytics
from app.models.enums import CourseStatus, PaymentStatus, ReviewStatus
from app.reviews.schemas import ReviewResponse

router = APIRouter(prefix="/institution", tags=["Institution"])

_institution = require_role(Role.INSTITUTION)


@router.get(
    "/courses",
    response_model=Envelope[list[CourseResponse]],
    summary="My courses",
    description="Every course the institution owns, drafts and suspended ones included.",
)
async def my_courses(
    status: CourseStatus | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(_institution),
) -> Envelope[list[CourseResponse]]:
    return Envelope(data=await controller.my_courses(db, user, status))


@router.get(
    "/reviews",
    response_model=Envelope[list[ReviewResponse]],
    summary="Reviews on my courses",
    description="All moderation states, with the moderation trail.",
)
async def my_reviews(
    status: ReviewStatus | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(_institution),
) -> Envelope[list[ReviewResponse]]:
    return Envelope(data=await controller.my_reviews(db, user, status))


@router.get(
    "/enrollments",
    response_model=Envelope[list[EnrollmentResponse]],
    summary="Enrollments on my courses",
    description="Completed enrollments unless ``payment_status`` says otherwise.",
)
async def my_enrollments(
    payment_status: PaymentStatus | None = Query(PaymentStatus.COMPLETED),
    course_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(_institution),
) -> Envelope[list[EnrollmentResponse]]:
    return Envelope(data=await controller.my_enrollments(db, user, payment_status, course_id))


@router.get(
    "/analytics",
    response_model=Envelope[InstitutionAnalytics],
    summary="Dashboard analytics",
)
async def analytics(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(_institution),
) -> Envelope[InstitutionAnalytics]:
    return Envelope(data=await controller.analytics(db, user))
