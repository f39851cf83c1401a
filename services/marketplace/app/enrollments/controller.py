"""Enrollments controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app import policy
from app.config import Settings
from app.courses.service import get_course
from app.enrollments import service
from app.enrollments.schemas import (
    ConfirmPaymentRequest,
    EnrolledCourse,
    EnrolledStudent,
    EnrollmentResponse,
    EnrollmentResult,
    EnrollRequest,
)
from app.exceptions import CourseNotFound, to_http_error
from app.models.enrollment import Enrollment


def enrollment_view(enrollment: Enrollment) -> EnrollmentResponse:
    unloaded = inspect(enrollment).unloaded
    data = {
        "id": enrollment.id,
        "course_id": enrollment.course_id,
        "user_id": enrollment.user_id,
        "payment_status": enrollment.payment_status,
        "amount": enrollment.amount,
        "enrolled_at": enrollment.enrolled_at,
    }
    if "course" not in unloaded and enrollment.course is not None:
        c = enrollment.course
        data["course"] = EnrolledCourse(
            id=c.id,
            title=c.title,
            start_date=c.start_date,
            end_date=c.end_date,
            institution_id=c.institution_id,
        )
    if "student" not in unloaded and enrollment.student is not None:
        s = enrollment.student
        data["student"] = EnrolledStudent(id=s.id, name=s.name, email=s.email)
    return EnrollmentResponse(**data)


async def enroll(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: EnrollRequest,
    settings: Settings,
) -> EnrollmentResult:
    try:
        course, enrollment = await service.enroll(
            db,
            course_id,
            user.id,
            amount=body.amount,
            auto_complete=settings.enrollment_auto_complete_payment,
        )
        await db.commit()
        return EnrollmentResult(
            enrollment=enrollment_view(enrollment),
            current_enrollments=course.current_enrollments,
            max_students=course.max_students,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc


async def confirm_payment(
    db: AsyncSession, course_id: UUID, enrollment_id: UUID, body: ConfirmPaymentRequest
) -> EnrollmentResult:
    try:
        course, enrollment = await service.confirm_payment(
            db, course_id, enrollment_id, body.payment_status
        )
        await db.commit()
        return EnrollmentResult(
            enrollment=enrollment_view(enrollment),
            current_enrollments=course.current_enrollments,
            max_students=course.max_students,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc


async def my_enrollments(db: AsyncSession, user: CurrentUser, past: bool) -> list[EnrollmentResponse]:
    try:
        enrollments = await service.list_user_enrollments(db, user.id, past=past)
        return [enrollment_view(e) for e in enrollments]
    except Exception as exc:
        raise to_http_error(exc) from exc


async def course_enrollments(
    db: AsyncSession, course_id: UUID, viewer: CurrentUser
) -> list[EnrollmentResponse]:
    try:
        course = await get_course(db, course_id)
        if not policy.can_mutate_course(course, viewer):
            # Enrollment rosters exist only for the owner and admins.
            raise CourseNotFound(str(course_id))
        return [enrollment_view(e) for e in await service.list_course_enrollments(db, course_id)]
    except Exception as exc:
        raise to_http_error(exc) from exc

