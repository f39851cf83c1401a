"""Optimistic-concurrency behaviour of course aggregate writes.

A rival writer is simulated by bumping ``courses.version`` (and, where
relevant, committing a competing enrollment) right after the service has
read and locked the course, so its own versioned UPDATE matches no row.
"""
import pytest
import sqlalchemy as sa
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app import concurrency
from app.config import get_settings
from app.enrollments import service as enrollment_service
from app.exceptions import Conflict, NotEnrollable
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import ModerationAction, PaymentStatus, ReviewStatus
from app.reviews import service as review_service
from shared.constants import Role

from factories import make_course, make_user

courses_table = Course.__table__


async def _bump_version(session, course_id) -> None:
    await session.execute(
        sa.update(courses_table)
        .where(courses_table.c.id == course_id)
        .values(version=courses_table.c.version + 1)
    )


class _StubSession:
    def __init__(self) -> None:
        self.flushes = 0
        self.rollbacks = 0

    async def flush(self) -> None:
        self.flushes += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


@pytest.mark.asyncio
async def test_run_atomic_retries_a_stale_write() -> None:
    session = _StubSession()
    calls = 0

    async def operation() -> str:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise StaleDataError("version mismatch")
        return "done"

    assert await concurrency.run_atomic(session, operation, attempts=3) == "done"
    assert calls == 2
    assert session.rollbacks == 1
    assert session.flushes == 1


@pytest.mark.asyncio
async def test_run_atomic_gives_up_with_conflict() -> None:
    session = _StubSession()
    calls = 0

    async def operation() -> None:
        nonlocal calls
        calls += 1
        raise StaleDataError("version mismatch")

    with pytest.raises(Conflict):
        await concurrency.run_atomic(session, operation)

    assert calls == get_settings().concurrency_retry_attempts
    assert session.rollbacks == calls


@pytest.mark.asyncio
async def test_enroll_rechecks_capacity_after_losing_the_race(
    session_factory, monkeypatch
) -> None:
    async with session_factory() as session:
        institution = await make_user(session, role=Role.INSTITUTION, is_verified=True)
        course = await make_course(session, institution, max_students=2)
        first, rival, latecomer = [await make_user(session) for _ in range(3)]
        await enrollment_service.enroll(session, course.id, first.id)
        await session.commit()

    real_lock = enrollment_service.lock_course
    reads = 0

    async def racing_lock(session, course_id, **kwargs):
        nonlocal reads
        reads += 1
        locked = await real_lock(session, course_id, **kwargs)
        if reads == 1:
            # The rival takes the last seat between our read and our write
            await session.execute(
                sa.insert(Enrollment.__table__).values(
                    course_id=course_id,
                    user_id=rival.id,
                    amount=locked.price,
                    payment_status=PaymentStatus.COMPLETED,
                )
            )
            await session.execute(
                sa.update(courses_table)
                .where(courses_table.c.id == course_id)
                .values(
                    current_enrollments=2,
                    version=courses_table.c.version + 1,
                )
            )
            await session.commit()
        return locked

    monkeypatch.setattr(enrollment_service, "lock_course", racing_lock)

    async with session_factory() as session:
        with pytest.raises(NotEnrollable):
            await enrollment_service.enroll(session, course.id, latecomer.id)

    assert reads == 2
    async with session_factory() as session:
        stored = (
            await session.execute(
                sa.select(Course)
                .options(selectinload(Course.enrollments))
                .where(Course.id == course.id)
            )
        ).scalar_one()
        completed = [
            e for e in stored.enrollments if e.payment_status == PaymentStatus.COMPLETED
        ]
        assert len(completed) == 2
        assert {e.user_id for e in completed} == {first.id, rival.id}
        assert stored.current_enrollments == 2


@pytest.mark.asyncio
async def test_moderation_conflicts_when_the_course_keeps_changing(
    session_factory, monkeypatch
) -> None:
    async with session_factory() as session:
        institution = await make_user(session, role=Role.INSTITUTION, is_verified=True)
        admin = await make_user(session, role=Role.ADMIN)
        aspirant = await make_user(session)
        course = await make_course(session, institution)
        review = await review_service.submit_review(
            session,
            course.id,
            aspirant.id,
            course_rating=5,
            institute_rating=4,
            faculty_rating=3,
            review_text="Solid mock tests.",
        )
        await session.commit()

    real_lock = review_service.lock_course
    reads = 0

    async def always_stale(session, course_id, **kwargs):
        nonlocal reads
        reads += 1
        locked = await real_lock(session, course_id, **kwargs)
        await _bump_version(session, course_id)
        return locked

    monkeypatch.setattr(review_service, "lock_course", always_stale)

    async with session_factory() as session:
        with pytest.raises(Conflict):
            await review_service.moderate_review(
                session,
                course.id,
                review.id,
                action=ModerationAction.APPROVE,
                moderator_id=admin.id,
            )

    assert reads == get_settings().concurrency_retry_attempts
    async with session_factory() as session:
        stored = (
            await session.execute(
                sa.select(Course)
                .options(selectinload(Course.reviews))
                .where(Course.id == course.id)
            )
        ).scalar_one()
        assert stored.reviews[0].status == ReviewStatus.PENDING
        assert stored.total_reviews == 0
