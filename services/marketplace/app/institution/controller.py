"""Institution dashboard controller."""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.courses.controller import course_view
from app.courses.schemas import CourseResponse
from app.enrollments import service as enrollment_service
from app.enrollments.controller import enrollment_view
from app.enrollments.schemas import EnrollmentResponse
from app.exceptions import to_http_error
from app.institution import service
from app.institution.schemas import InstitutionAnalytics
from app.models.enums import CourseStatus, PaymentStatus, ReviewStatus
from app.reviews import service as review_service
from app.reviews.controller import review_view
from app.reviews.schemas import ReviewResponse


async def my_courses(
    db: AsyncSession, user: CurrentUser, status: CourseStatus | None
) -> list[CourseResponse]:
    try:
        courses = await service.list_own_courses(db, user.id, status=status)
        return [course_view(c) for c in courses]
    except Exception as exc:
        raise to_http_error(exc) from exc


async def my_reviews(
    db: AsyncSession, user: CurrentUser, status: ReviewStatus | None
) -> list[ReviewResponse]:
    try:
        reviews = await review_service.list_institution_reviews(db, user.id, status=status)
        return [review_view(r, full=True) for r in reviews]
    except Exception as exc:
        raise to_http_error(exc) from exc


async def my_enrollments(
    db: AsyncSession,
    user: CurrentUser,
    payment_status: PaymentStatus | None,
    course_id: UUID | None,
) -> list[EnrollmentResponse]:
    try:
        enrollments = await enrollment_service.list_institution_enrollments(
            db, user.id, payment_status=payment_status, course_id=course_id
        )
        return [enrollment_view(e) for e in enrollments]
    except Exception as exc:
        raise to_http_error(exc) from exc


async def analytics(db: AsyncSession, user: CurrentUser) -> InstitutionAnalytics:
    try:
        return InstitutionAnalytics(**asdict(await service.analytics(db, user.id)))
    except Exception as exc:
        raise to_http_error(exc) from exc
