"""
Enrollment & capacity — pure business logic (zero FastAPI imports).

Payment status transitions:
  (new)      → COMPLETED   enroll()  when payments auto-complete
  (new)      → PENDING     enroll()  otherwise
  PENDING    → COMPLETED   confirm_payment()  capacity re-checked
  PENDING    → FAILED      confirm_payment()
  FAILED     → PENDING     confirm_payment()  support retry
  COMPLETED  → (terminal)

``current_enrollments`` is recounted from the course's completed records on
every change, while the course row is locked, so the cap holds under
concurrent enroll calls.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.clock import utcnow
from app.concurrency import lock_course, run_atomic, touch
from app.exceptions import (
    AlreadyEnrolled,
    EnrollmentNotFound,
    InvalidState,
    NotEnrollable,
)
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import PaymentStatus

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING}),
    PaymentStatus.COMPLETED: frozenset(),
}


def count_completed(course: Course) -> int:
    return sum(1 for e in course.enrollments if e.payment_status == PaymentStatus.COMPLETED)


def _recount(course: Course) -> None:
    course.current_enrollments = count_completed(course)


def check_enrollable(course: Course) -> None:
    if not course.is_live:
        raise NotEnrollable("Course is not published.")
    if utcnow().date() > course.enrollment_cutoff:
        raise NotEnrollable("Enrollment for this course has closed.")
    if not course.has_capacity:
        raise NotEnrollable("Course is full.")


async def enroll(
    session: AsyncSession,
    course_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    amount: Decimal | None = None,
    auto_complete: bool = True,
) -> tuple[Course, Enrollment]:
    """Enroll ``user_id`` in a live course with free capacity.

    Any existing record for the pair blocks a new one, failed payments
    included; support retries those through ``confirm_payment``.
    """

    async def _enroll() -> tuple[Course, Enrollment]:
        course = await lock_course(session, course_id, with_enrollments=True)
        _recount(course)
        check_enrollable(course)
        if any(e.user_id == user_id for e in course.enrollments):
            raise AlreadyEnrolled()

        enrollment = Enrollment(
            course_id=course.id,
            user_id=user_id,
            amount=course.price if amount is None else amount,
            payment_status=PaymentStatus.COMPLETED if auto_complete else PaymentStatus.PENDING,
        )
        course.enrollments.append(enrollment)
        _recount(course)
        touch(course)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise AlreadyEnrolled() from exc
        return course, enrollment

    course, enrollment = await run_atomic(session, _enroll)
    logger.info(
        "User %s enrolled in course %s (%s), %d/%d",
        user_id,
        course.id,
        enrollment.payment_status.value,
        course.current_enrollments,
        course.max_students,
    )
    return course, enrollment


async def confirm_payment(
    session: AsyncSession,
    course_id: uuid.UUID,
    enrollment_id: uuid.UUID,
    outcome: PaymentStatus,
) -> tuple[Course, Enrollment]:
    async def _confirm() -> tuple[Course, Enrollment]:
        course = await lock_course(session, course_id, with_enrollments=True)
        enrollment = next((e for e in course.enrollments if e.id == enrollment_id), None)
        if enrollment is None:
            raise EnrollmentNotFound(str(enrollment_id))
        current = enrollment.payment_status
        if outcome not in _ALLOWED_TRANSITIONS[current]:
            raise InvalidState(f"Cannot move a {current.value} payment to {outcome.value}.")
        _recount(course)
        if outcome == PaymentStatus.COMPLETED and not course.has_capacity:
            raise NotEnrollable("Course is full.")
        enrollment.payment_status = outcome
        enrollment.updated_at = utcnow()
        _recount(course)
        touch(course)
        return course, enrollment

    course, enrollment = await run_atomic(session, _confirm)
    logger.info("Enrollment %s payment → %s", enrollment.id, outcome.value)
    return course, enrollment


async def list_user_enrollments(
    session: AsyncSession, user_id: uuid.UUID, *, past: bool = False
) -> list[Enrollment]:
    q = (
        sa.select(Enrollment)
        .join(Course, Course.id == Enrollment.course_id)
        .options(selectinload(Enrollment.course))
        .where(
            Enrollment.user_id == user_id,
            Enrollment.payment_status == PaymentStatus.COMPLETED,
        )
        .order_by(Enrollment.enrolled_at.desc())
    )
    if past:
        q = q.where(Course.end_date < utcnow().date())
    result = await session.execute(q)
    return list(result.scalars().all())


async def list_institution_enrollments(
    session: AsyncSession,
    institution_id: uuid.UUID,
    *,
    payment_status: PaymentStatus | None = PaymentStatus.COMPLETED,
    course_id: uuid.UUID | None = None,
) -> list[Enrollment]:
    q = (
        sa.select(Enrollment)
        .join(Course, Course.id == Enrollment.course_id)
        .options(selectinload(Enrollment.course), selectinload(Enrollment.student))
        .where(Course.institution_id == institution_id)
        .order_by(Enrollment.enrolled_at.desc())
    )
    if payment_status is not None:
        q = q.where(Enrollment.payment_status == payment_status)
    if course_id is not None:
        q = q.where(Enrollment.course_id == course_id)
    result = await session.execute(q)
    return list(result.scalars().all())


async def list_course_enrollments(session: AsyncSession, course_id: uuid.UUID) -> list[Enrollment]:
    result = await session.execute(
        sa.select(Enrollment)
        .options(selectinload(Enrollment.student))
        .where(Enrollment.course_id == course_id)
        .order_by(Enrollment.enrolled_at.desc())
    )
    return list(result.scalars().all())
