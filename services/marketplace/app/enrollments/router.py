"""Enrollments router — HTTP layer only."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.dependencies import get_current_user_required, require_role
from shared.constants import Role
from shared.models.envelope import Envelope
from shared.models.user import CurrentUser

from app.config import Settings, get_settings
from app.database import get_db
from app.enrollments import controller
from app.enrollments.schemas import (
    ConfirmPaymentRequest,
    EnrollmentResponse,
    EnrollmentResult,
    EnrollRequest,
)

router = APIRouter(tags=["Enrollments"])


@router.post(
    "/courses/{course_id}/enrollments",
    response_model=Envelope[EnrollmentResult],
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
    description="Course must be published, before its enrollment cut-off and not full. "
    "One enrollment per user per course, whatever its payment status.",
)
async def enroll(
    course_id: UUID,
    body: EnrollRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.ASPIRANT)),
    settings: Settings = Depends(get_settings),
) -> Envelope[EnrollmentResult]:
    result = await controller.enroll(db, course_id, user, body or EnrollRequest(), settings)
    return Envelope(data=result, message="Enrolled successfully.")


@router.get(
    "/courses/{course_id}/enrollments",
    response_model=Envelope[list[EnrollmentResponse]],
    summary="Course roster",
    description="Every enrollment on the course, any payment status. Owner and admins only.",
)
async def course_enrollments(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.INSTITUTION, Role.ADMIN)),
) -> Envelope[list[EnrollmentResponse]]:
    return Envelope(data=await controller.course_enrollments(db, course_id, user))


@router.patch(
    "/courses/{course_id}/enrollments/{enrollment_id}/payment",
    response_model=Envelope[EnrollmentResult],
    tags=["Admin"],
    summary="Record a payment outcome (admin)",
    description="pending → completed | failed; failed → pending to retry. "
    "Completing re-checks capacity.",
)
async def confirm_payment(
    course_id: UUID,
    enrollment_id: UUID,
    body: ConfirmPaymentRequest,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_role(Role.ADMIN)),
) -> Envelope[EnrollmentResult]:
    return Envelope(data=await controller.confirm_payment(db, course_id, enrollment_id, body))


@router.get(
    "/enrollments/mine",
    response_model=Envelope[list[EnrollmentResponse]],
    summary="My enrolled courses",
    description="Completed enrollments; ``past=true`` keeps only courses that have ended.",
)
async def my_enrollments(
    past: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user_required),
) -> Envelope[list[EnrollmentResponse]]:
    return Envelope(data=await controller.my_enrollments(db, user, past))
