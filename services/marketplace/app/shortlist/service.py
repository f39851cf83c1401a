"""
Shortlist — pure business logic (zero FastAPI imports).

One shortlist per user, created on first access. ``Course.shortlisted``
mirrors how many shortlists hold the course; it is maintained with atomic
UPDATE statements outside the course lock and floors at zero.
"""
from __future__ import annotations

import logging
import uuid

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.clock import utcnow
from app.exceptions import Conflict, CourseNotFound, NotFound
from app.models.course import Course
from app.models.shortlist import Shortlist, ShortlistItem

logger = logging.getLogger(__name__)


async def _bump_counter(session: AsyncSession, course_id: uuid.UUID, delta: int) -> None:
    if delta > 0:
        value = Course.shortlisted + delta
    else:
        value = sa.case(
            (Course.shortlisted + delta > 0, Course.shortlisted + delta),
            else_=0,
        )
    await session.execute(
        sa.update(Course)
        .where(Course.id == course_id)
        .values(shortlisted=value)
        .execution_options(synchronize_session=False)
    )


async def _load(session: AsyncSession, user_id: uuid.UUID) -> Shortlist | None:
    result = await session.execute(
        sa.select(Shortlist)
        .options(
            selectinload(Shortlist.items)
            .selectinload(ShortlistItem.course)
            .selectinload(Course.institution)
        )
        .where(Shortlist.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_shortlist(session: AsyncSession, user_id: uuid.UUID) -> Shortlist:
    shortlist = await _load(session, user_id)
    if shortlist is not None:
        return shortlist
    session.add(Shortlist(user_id=user_id))
    try:
        await session.flush()
    except IntegrityError as exc:
        raise Conflict("Shortlist was created concurrently. Please retry.") from exc
    return await _load(session, user_id)


def _find_item(shortlist: Shortlist, course_id: uuid.UUID) -> ShortlistItem | None:
    return next((i for i in shortlist.items if i.course_id == course_id), None)


async def add_course(
    session: AsyncSession,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
    notes: str | None = None,
) -> tuple[Shortlist, bool]:
    """Save a live course. Returns ``(shortlist, added)``; re-adding only updates notes."""
    course = await session.get(Course, course_id)
    if course is None or not course.is_live:
        raise CourseNotFound(str(course_id))

    shortlist = await get_shortlist(session, user_id)
    existing = _find_item(shortlist, course_id)
    if existing is not None:
        if notes is not None:
            existing.notes = notes
            shortlist.updated_at = utcnow()
            await session.flush()
        return shortlist, False

    session.add(ShortlistItem(shortlist_id=shortlist.id, course_id=course_id, notes=notes))
    shortlist.updated_at = utcnow()
    try:
        await session.flush()
    except IntegrityError as exc:
        raise Conflict("Course is already shortlisted.") from exc
    await _bump_counter(session, course_id, +1)
    logger.info("User %s shortlisted course %s", user_id, course_id)
    return await _load(session, user_id), True


async def remove_course(
    session: AsyncSession, user_id: uuid.UUID, course_id: uuid.UUID
) -> Shortlist:
    shortlist = await get_shortlist(session, user_id)
    item = _find_item(shortlist, course_id)
    if item is None:
        raise NotFound("Course not in shortlist.")
    shortlist.items.remove(item)
    shortlist.updated_at = utcnow()
    await session.flush()
    await _bump_counter(session, course_id, -1)
    return await _load(session, user_id)


async def update_notes(
    session: AsyncSession,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
    notes: str | None,
) -> Shortlist:
    shortlist = await get_shortlist(session, user_id)
    item = _find_item(shortlist, course_id)
    if item is None:
        raise NotFound("Course not in shortlist.")
    item.notes = notes
    shortlist.updated_at = utcnow()
    await session.flush()
    return shortlist
