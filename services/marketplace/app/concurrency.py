"""
Course aggregate locking.

Every mutation of a course's reviews, votes, enrollments or derived fields
runs as one unit against the course row:

  1. ``lock_course`` re-reads the row with SELECT … FOR UPDATE (a no-op on
     SQLite) and refreshes it and the requested child collections.
  2. The caller mutates children and recomputes derived columns.
  3. ``touch`` bumps ``updated_at`` so the versioned UPDATE is emitted even
     when only child rows changed; a concurrent writer that slipped past the
     lock makes that UPDATE match zero rows → ``StaleDataError``.

``run_atomic`` wraps the whole read-check-write in a retry loop: a stale
write rolls the session back and starts over from step 1.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.clock import utcnow
from app.config import get_settings
from app.exceptions import Conflict, CourseNotFound
from app.models.course import Course
from app.models.review import Review

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def lock_course(
    session: AsyncSession,
    course_id: uuid.UUID,
    *,
    with_reviews: bool = False,
    with_votes: bool = False,
    with_enrollments: bool = False,
) -> Course:
    stmt = (
        select(Course)
        .where(Course.id == course_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if with_reviews or with_votes:
        loader = selectinload(Course.reviews)
        if with_votes:
            loader = loader.selectinload(Review.votes)
        stmt = stmt.options(loader)
    if with_enrollments:
        stmt = stmt.options(selectinload(Course.enrollments))
    course = (await session.execute(stmt)).scalar_one_or_none()
    if course is None:
        raise CourseNotFound(str(course_id))
    return course


def touch(course: Course) -> None:
    course.updated_at = utcnow()


async def run_atomic(
    session: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int | None = None,
) -> T:
    """Run ``operation`` and flush; retry from scratch on a stale course version."""
    if attempts is None:
        attempts = get_settings().concurrency_retry_attempts
    for attempt in range(1, attempts + 1):
        try:
            result = await operation()
            await session.flush()
            return result
        except StaleDataError:
            await session.rollback()
            logger.warning("Stale course version, retrying (attempt %d/%d)", attempt, attempts)
    raise Conflict()
