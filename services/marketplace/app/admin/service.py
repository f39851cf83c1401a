"""
Admin — platform oversight (zero FastAPI imports).

Course publication, admin side:
  DRAFT | PUBLISHED   → SUSPENDED   set_course_publication(False, reason)
  DRAFT | SUSPENDED   → PUBLISHED   set_course_publication(True)  owner must be active
  ARCHIVED | CANCELLED              untouchable

Delist cascade: deactivating an institution suspends every open course it
owns in one UPDATE and stamps ``admin_action``. Reactivation restores the
account only; each course has to be republished explicitly.

Transaction contract: these functions only flush(); the controller commits.
"""
from __future__ import annotations

import logging
import uuid

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shared.constants import Role

from app.auth.service import get_user_by_id
from app.clock import utcnow
from app.concurrency import lock_course, run_atomic, touch
from app.exceptions import InvalidState, UserNotFound, ValidationFailed
from app.models.course import Course
from app.models.enums import CourseStatus, ReviewStatus
from app.models.review import Review
from app.models.user import User

logger = logging.getLogger(__name__)

_CLOSED = (CourseStatus.ARCHIVED, CourseStatus.CANCELLED)


def _admin_action(action: str, reason: str | None, admin_id: uuid.UUID) -> dict:
    return {
        "action": action,
        "reason": reason or "",
        "action_by": str(admin_id),
        "action_at": utcnow().isoformat(),
    }


async def _count(session: AsyncSession, model, *conditions) -> int:
    q = sa.select(sa.func.count()).select_from(model).where(*conditions)
    return (await session.execute(q)).scalar_one()


async def stats(session: AsyncSession) -> dict[str, int]:
    return {
        "aspirant_count": await _count(session, User, User.role == Role.ASPIRANT),
        "institution_count": await _count(session, User, User.role == Role.INSTITUTION),
        "verified_institutions": await _count(
            session, User, User.role == Role.INSTITUTION, User.is_verified.is_(True)
        ),
        "pending_institutions": await _count(
            session, User, User.role == Role.INSTITUTION, User.is_verified.is_(False)
        ),
        "course_count": await _count(session, Course),
        "published_courses": await _count(session, Course, Course.is_published.is_(True)),
        "pending_reviews": await _count(session, Review, Review.status == ReviewStatus.PENDING),
    }


async def list_users(
    session: AsyncSession,
    *,
    role: Role | None = None,
    is_verified: bool | None = None,
    is_active: bool | None = None,
    limit: int,
    offset: int,
) -> tuple[list[User], int]:
    conditions = []
    if role is not None:
        conditions.append(User.role == role)
    if is_verified is not None:
        conditions.append(User.is_verified.is_(is_verified))
    if is_active is not None:
        conditions.append(User.is_active.is_(is_active))
    total = await _count(session, User, *conditions)
    result = await session.execute(
        sa.select(User)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


async def list_institutions(
    session: AsyncSession,
    *,
    is_verified: bool | None = None,
    is_active: bool | None = None,
    limit: int,
    offset: int,
) -> tuple[list[tuple[User, int, int]], int]:
    """Institutions with their total and published course counts."""
    institutions, total = await list_users(
        session,
        role=Role.INSTITUTION,
        is_verified=is_verified,
        is_active=is_active,
        limit=limit,
        offset=offset,
    )
    if not institutions:
        return [], total
    rows = await session.execute(
        sa.select(
            Course.institution_id,
            sa.func.count(Course.id),
            sa.func.sum(sa.case((Course.is_published.is_(True), 1), else_=0)),
        )
        .where(Course.institution_id.in_([i.id for i in institutions]))
        .group_by(Course.institution_id)
    )
    counts = {inst_id: (int(n), int(published or 0)) for inst_id, n, published in rows.all()}
    return [(i, *counts.get(i.id, (0, 0))) for i in institutions], total


async def list_courses(
    session: AsyncSession,
    *,
    is_published: bool | None = None,
    status: CourseStatus | None = None,
    institution_id: uuid.UUID | None = None,
    limit: int,
    offset: int,
) -> tuple[list[Course], int]:
    conditions = []
    if is_published is not None:
        conditions.append(Course.is_published.is_(is_published))
    if status is not None:
        conditions.append(Course.status == status)
    if institution_id is not None:
        conditions.append(Course.institution_id == institution_id)
    total = await _count(session, Course, *conditions)
    result = await session.execute(
        sa.select(Course)
        .options(selectinload(Course.institution))
        .where(*conditions)
        .order_by(Course.created_at.desc(), Course.id)
        .limit(limit)
        .offset(offset)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def _get_institution(session: AsyncSession, institution_id: uuid.UUID) -> User:
    user = await session.get(User, institution_id)
    if user is None or user.role != Role.INSTITUTION:
        raise UserNotFound(str(institution_id))
    return user


async def verify_institution(
    session: AsyncSession,
    institution_id: uuid.UUID,
    is_verified: bool,
    admin_id: uuid.UUID,
) -> User:
    institution = await _get_institution(session, institution_id)
    institution.is_verified = is_verified
    institution.verified_at = utcnow() if is_verified else None
    institution.verified_by = admin_id if is_verified else None
    await session.flush()
    logger.info(
        "Institution %s %s by admin %s",
        institution.id,
        "verified" if is_verified else "unverified",
        admin_id,
    )
    return institution


async def set_institution_status(
    session: AsyncSession,
    institution_id: uuid.UUID,
    is_active: bool,
    admin_id: uuid.UUID,
    reason: str | None = None,
) -> tuple[User, int]:
    """Activate or delist an institution. Returns ``(institution, suspended_course_count)``."""
    if not is_active and not (reason or "").strip():
        raise ValidationFailed("A reason is required to delist an institution.")
    institution = await _get_institution(session, institution_id)
    institution.is_active = is_active
    await session.flush()

    if is_active:
        logger.info("Institution %s reactivated by admin %s", institution.id, admin_id)
        return institution, 0

    now = utcnow()
    result = await session.execute(
        sa.update(Course)
        .where(Course.institution_id == institution.id, Course.status.not_in(_CLOSED))
        .values(
            status=CourseStatus.SUSPENDED,
            is_published=False,
            admin_action=_admin_action("unpublished", f"Institution delisted: {reason}", admin_id),
            version=Course.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    logger.warning(
        "Institution %s delisted by admin %s: %d course(s) suspended",
        institution.id,
        admin_id,
        result.rowcount,
    )
    return institution, result.rowcount


async def set_user_status(
    session: AsyncSession, user_id: uuid.UUID, is_active: bool, admin_id: uuid.UUID
) -> User:
    user = await get_user_by_id(session, user_id)
    if user.role == Role.INSTITUTION:
        raise InvalidState("Use the institution status endpoint to delist institutions.")
    if user.id == admin_id and not is_active:
        raise InvalidState("Admins cannot deactivate themselves.")
    user.is_active = is_active
    await session.flush()
    logger.info("User %s %s by admin %s", user.id, "activated" if is_active else "deactivated", admin_id)
    return user


async def set_course_publication(
    session: AsyncSession,
    course_id: uuid.UUID,
    is_published: bool,
    admin_id: uuid.UUID,
    reason: str | None = None,
) -> Course:
    if not is_published and not (reason or "").strip():
        raise ValidationFailed("A reason is required to suspend a course.")

    async def _toggle() -> Course:
        course = await lock_course(session, course_id)
        if course.status in _CLOSED:
            raise InvalidState(f"Course is {course.status.value}.")
        if is_published:
            owner = await _get_institution(session, course.institution_id)
            if not owner.is_active:
                raise InvalidState("The owning institution is delisted.")
            course.status = CourseStatus.PUBLISHED
            course.is_published = True
            course.admin_action = _admin_action("published", reason, admin_id)
        else:
            course.status = CourseStatus.SUSPENDED
            course.is_published = False
            course.admin_action = _admin_action("unpublished", reason, admin_id)
        touch(course)
        return course

    course = await run_atomic(session, _toggle)
    logger.info("Course %s → %s by admin %s", course.id, course.status.value, admin_id)
    return course
