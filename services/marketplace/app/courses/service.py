"""
Courses domain — pure business logic (zero FastAPI imports).

Publication state machine, owner side:
  DRAFT      → PUBLISHED   set_publication(True)   owner verified + active
  PUBLISHED  → DRAFT       set_publication(False)
  any open   → ARCHIVED    close_course()          terminal
  any open   → CANCELLED   close_course()          terminal
  SUSPENDED  → (blocked)   only an admin can reinstate (app.admin.service)

Promotion is independent of status: ``featured`` sets ``is_featured``, every
other level clears it. It only affects default catalogue ordering.

Transaction contract: these functions only flush(); the controller commits.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shared.constants import Role
from shared.models.user import CurrentUser

from app import policy
from app.clock import as_utc, utcnow
from app.concurrency import lock_course, run_atomic, touch
from app.exceptions import (
    AccountInactive,
    CourseNotFound,
    Forbidden,
    InvalidState,
    NotCourseOwner,
    UserNotFound,
    ValidationFailed,
)
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import CourseStatus, CourseType, PaymentStatus, PromotionLevel
from app.models.review import Review
from app.models.shortlist import Shortlist, ShortlistItem
from app.models.user import User

logger = logging.getLogger(__name__)

TRENDING_WINDOW_DAYS = 30
_CLOSED = frozenset({CourseStatus.ARCHIVED, CourseStatus.CANCELLED})
_LOCATION_TYPES = frozenset({CourseType.OFFLINE.value, CourseType.HYBRID.value})

_PROMOTION_RANK = sa.case(
    (Course.promotion_level == PromotionLevel.FEATURED, 3),
    (Course.promotion_level == PromotionLevel.PREMIUM, 2),
    (Course.promotion_level == PromotionLevel.BASIC, 1),
    else_=0,
)


def _json_list_contains(column, value: str):
    """Portable membership test on a JSON array of strings."""
    return sa.cast(column, sa.String).like(f'%"{value}"%')


def _live_filter():
    return sa.and_(Course.is_published.is_(True), Course.status == CourseStatus.PUBLISHED)


def _validate_course_shape(course: Course) -> None:
    if course.start_date >= course.end_date:
        raise ValidationFailed("end_date must be after start_date.")
    if course.enrollment_deadline and course.enrollment_deadline > course.end_date:
        raise ValidationFailed("enrollment_deadline cannot be after end_date.")
    if _LOCATION_TYPES.intersection(course.course_types or []):
        missing = [f for f in ("city", "state", "address") if not getattr(course, f)]
        if missing:
            raise ValidationFailed(f"{', '.join(missing)} required for offline or hybrid courses.")


def _apply_promotion(course: Course, level: PromotionLevel) -> None:
    course.promotion_level = level
    course.is_featured = level == PromotionLevel.FEATURED


async def _get_institution(session: AsyncSession, institution_id: uuid.UUID) -> User:
    user = await session.get(User, institution_id)
    if user is None or user.role != Role.INSTITUTION:
        raise UserNotFound(str(institution_id))
    return user


def _assert_owner(course: Course, actor: CurrentUser) -> None:
    if policy.course_access(course, actor) is not policy.Access.OWNER:
        raise NotCourseOwner()


def _assert_owner_or_admin(course: Course, actor: CurrentUser) -> None:
    if not policy.can_mutate_course(course, actor):
        raise NotCourseOwner()


# ── Create ────────────────────────────────────────────────────────────────────

async def create_course(
    session: AsyncSession,
    institution_id: uuid.UUID,
    *,
    fields: dict[str, Any],
    syllabus_ref: str | None = None,
) -> Course:
    """Insert a course owned by ``institution_id``.

    A verified, active institution's course goes live immediately unless the
    payload says ``is_published=False``; anyone else's starts as a draft.
    """
    institution = await _get_institution(session, institution_id)
    if not institution.is_active:
        raise AccountInactive()

    data = dict(fields)
    requested_publish = data.pop("is_published", None)
    promotion = data.pop("promotion_level", PromotionLevel.NONE)
    if data.get("original_price") is None:
        data["original_price"] = data["price"]
    if not data.get("cover_image"):
        data.pop("cover_image", None)

    course = Course(institution_id=institution.id, syllabus_file=syllabus_ref, **data)
    course.institution = institution
    _apply_promotion(course, promotion)
    _validate_course_shape(course)

    if institution.can_publish and requested_publish is not False:
        course.is_published = True
        course.status = CourseStatus.PUBLISHED
    else:
        course.is_published = False
        course.status = CourseStatus.DRAFT

    session.add(course)
    await session.flush()
    logger.info(
        "Course %s created by institution %s (%s)", course.id, institution.id, course.status.value
    )
    return course


# ── Reads ─────────────────────────────────────────────────────────────────────

async def get_course(session: AsyncSession, course_id: uuid.UUID) -> Course:
    result = await session.execute(
        sa.select(Course).options(selectinload(Course.institution)).where(Course.id == course_id)
    )
    course = result.scalar_one_or_none()
    if course is None:
        raise CourseNotFound(str(course_id))
    return course


async def get_visible_course(
    session: AsyncSession, course_id: uuid.UUID, viewer: CurrentUser | None
) -> Course:
    """Load a course the viewer may see; a hidden course is indistinguishable from a missing one."""
    course = await get_course(session, course_id)
    if not policy.can_view_course(course, viewer):
        raise CourseNotFound(str(course_id))
    return course


async def get_course_detail(
    session: AsyncSession, course_id: uuid.UUID, viewer: CurrentUser | None
) -> tuple[Course, list[Review]]:
    result = await session.execute(
        sa.select(Course)
        .options(
            selectinload(Course.institution),
            selectinload(Course.reviews).selectinload(Review.author),
        )
        .where(Course.id == course_id)
    )
    course = result.scalar_one_or_none()
    if course is None or not policy.can_view_course(course, viewer):
        raise CourseNotFound(str(course_id))
    reviews = policy.visible_reviews(course, course.reviews, viewer)
    reviews.sort(key=lambda r: as_utc(r.created_at), reverse=True)
    return course, reviews


async def record_view(session: AsyncSession, course_id: uuid.UUID) -> int:
    """Atomically bump the view counter of a live course."""
    result = await session.execute(
        sa.update(Course)
        .where(Course.id == course_id, _live_filter())
        .values(views=Course.views + 1)
        .returning(Course.views)
        .execution_options(synchronize_session=False)
    )
    views = result.scalar_one_or_none()
    if views is None:
        raise CourseNotFound(str(course_id))
    return views


async def get_syllabus_ref(
    session: AsyncSession, course_id: uuid.UUID, viewer: CurrentUser | None
) -> str:
    course = await get_visible_course(session, course_id, viewer)
    if not course.syllabus_file:
        raise CourseNotFound(f"{course_id} has no syllabus")
    return course.syllabus_file


async def list_published(
    session: AsyncSession,
    *,
    search: str | None = None,
    category: str | None = None,
    course_type: str | None = None,
    city: str | None = None,
    state: str | None = None,
    language: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    start_date_from: date | None = None,
    min_rating: float | None = None,
    featured: bool | None = None,
    promoted: bool | None = None,
    sort: str = "relevance",
    limit: int,
    offset: int,
) -> tuple[list[Course], int]:
    """Public catalogue: live courses only, filtered, sorted and paginated."""
    conditions = [_live_filter()]
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            sa.or_(
                Course.title.ilike(pattern),
                Course.description.ilike(pattern),
                sa.cast(Course.tags, sa.String).ilike(pattern),
                sa.cast(Course.subjects, sa.String).ilike(pattern),
                sa.cast(Course.search_keywords, sa.String).ilike(pattern),
            )
        )
    if category:
        conditions.append(Course.course_category == category)
    if course_type:
        conditions.append(_json_list_contains(Course.course_types, course_type))
    if city:
        conditions.append(Course.city.ilike(f"%{city.strip()}%"))
    if state:
        conditions.append(sa.func.lower(Course.state) == state.strip().lower())
    if language:
        conditions.append(_json_list_contains(Course.course_languages, language))
    if min_price is not None:
        conditions.append(Course.price >= min_price)
    if max_price is not None:
        conditions.append(Course.price <= max_price)
    if start_date_from is not None:
        conditions.append(Course.start_date >= start_date_from)
    if min_rating is not None:
        conditions.append(Course.rating_overall >= min_rating)
    if featured is not None:
        conditions.append(Course.is_featured.is_(featured))
    if promoted is not None:
        if promoted:
            conditions.append(Course.promotion_level != PromotionLevel.NONE)
        else:
            conditions.append(Course.promotion_level == PromotionLevel.NONE)

    order_by = {
        "price-low": [Course.price.asc()],
        "price-high": [Course.price.desc()],
        "rating": [Course.rating_overall.desc(), Course.total_reviews.desc()],
        "newest": [Course.created_at.desc()],
        "start-date": [Course.start_date.asc()],
        "popularity": [Course.views.desc(), Course.shortlisted.desc()],
    }.get(
        sort,
        [
            Course.is_featured.desc(),
            _PROMOTION_RANK.desc(),
            Course.rating_overall.desc(),
            Course.created_at.desc(),
        ],
    )

    count_q = sa.select(sa.func.count()).select_from(Course).where(*conditions)
    total = (await session.execute(count_q)).scalar_one()

    q = (
        sa.select(Course)
        .options(selectinload(Course.institution))
        .where(*conditions)
        .order_by(*order_by, Course.id)
        .limit(limit)
        .offset(offset)
    )
    result = await session.execute(q)
    return list(result.scalars().all()), total


async def list_trending(session: AsyncSession, *, limit: int = 10) -> list[Course]:
    since = utcnow() - timedelta(days=TRENDING_WINDOW_DAYS)
    result = await session.execute(
        sa.select(Course)
        .options(selectinload(Course.institution))
        .where(_live_filter(), Course.created_at >= since)
        .order_by(
            Course.views.desc(),
            Course.shortlisted.desc(),
            Course.current_enrollments.desc(),
            Course.id,
        )
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_recommendations(
    session: AsyncSession, user_id: uuid.UUID, *, limit: int = 10
) -> list[Course]:
    """Live courses sharing a category, city, tag or language with what the
    user shortlisted or completed enrollment in. Falls back to top rated."""
    shortlisted_ids = sa.select(ShortlistItem.course_id).join(
        Shortlist, Shortlist.id == ShortlistItem.shortlist_id
    ).where(Shortlist.user_id == user_id)
    enrolled_ids = sa.select(Enrollment.course_id).where(
        Enrollment.user_id == user_id,
        Enrollment.payment_status == PaymentStatus.COMPLETED,
    )
    seen_ids = {
        row[0]
        for row in (await session.execute(shortlisted_ids.union(enrolled_ids))).all()
    }

    base = (
        sa.select(Course)
        .options(selectinload(Course.institution))
        .where(_live_filter())
        .order_by(Course.rating_overall.desc(), Course.views.desc(), Course.id)
        .limit(limit)
    )
    if seen_ids:
        base = base.where(Course.id.not_in(seen_ids))
        seen = (await session.execute(sa.select(Course).where(Course.id.in_(seen_ids)))).scalars().all()
        categories = {c.course_category for c in seen}
        cities = {c.city for c in seen if c.city}
        tags = {t for c in seen for t in (c.tags or [])}
        languages = {lang for c in seen for lang in (c.course_languages or [])}

        similar = [Course.course_category.in_(categories)]
        if cities:
            similar.append(Course.city.in_(cities))
        similar.extend(_json_list_contains(Course.tags, t) for t in sorted(tags))
        similar.extend(_json_list_contains(Course.course_languages, lang) for lang in sorted(languages))
        result = await session.execute(base.where(sa.or_(*similar)))
        courses = list(result.scalars().all())
        if courses:
            return courses

    result = await session.execute(base)
    return list(result.scalars().all())


# ── Owner mutations ───────────────────────────────────────────────────────────

_UPDATABLE_FIELDS = frozenset({
    "title", "description", "price", "original_price", "discount", "duration",
    "start_date", "end_date", "enrollment_deadline", "course_category", "subjects",
    "course_languages", "course_types", "delivery_type", "faculty", "syllabus_details",
    "weekly_schedule", "tags", "search_keywords", "cover_image", "city", "state",
    "address", "max_students",
})


async def update_course(
    session: AsyncSession,
    course_id: uuid.UUID,
    actor: CurrentUser,
    changes: dict[str, Any],
) -> Course:
    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise ValidationFailed(f"Fields not updatable here: {', '.join(sorted(unknown))}.")

    async def _update() -> Course:
        course = await lock_course(session, course_id)
        _assert_owner_or_admin(course, actor)
        if course.status in _CLOSED:
            raise InvalidState(f"Course is {course.status.value}.")
        for field, value in changes.items():
            setattr(course, field, value)
        _validate_course_shape(course)
        if course.max_students and course.current_enrollments > course.max_students:
            raise ValidationFailed("max_students cannot be below the current enrollment count.")
        touch(course)
        return course

    return await run_atomic(session, _update)


async def replace_syllabus(
    session: AsyncSession,
    course_id: uuid.UUID,
    actor: CurrentUser,
    syllabus_ref: str,
) -> tuple[Course, str | None]:
    """Point the course at a new syllabus blob; returns the previous reference."""

    async def _replace() -> tuple[Course, str | None]:
        course = await lock_course(session, course_id)
        _assert_owner_or_admin(course, actor)
        previous = course.syllabus_file
        course.syllabus_file = syllabus_ref
        touch(course)
        return course, previous

    return await run_atomic(session, _replace)


async def set_publication(
    session: AsyncSession,
    course_id: uuid.UUID,
    actor: CurrentUser,
    is_published: bool,
) -> Course:
    async def _toggle() -> Course:
        course = await lock_course(session, course_id)
        _assert_owner(course, actor)
        if course.status == CourseStatus.SUSPENDED:
            raise InvalidState("Course is suspended by an administrator.")
        if course.status in _CLOSED:
            raise InvalidState(f"Course is {course.status.value}.")
        if is_published:
            owner = await _get_institution(session, course.institution_id)
            if not owner.can_publish:
                raise Forbidden("Only verified, active institutions can publish courses.")
            course.is_published = True
            course.status = CourseStatus.PUBLISHED
        else:
            course.is_published = False
            course.status = CourseStatus.DRAFT
        touch(course)
        logger.info("Course %s → %s by owner", course.id, course.status.value)
        return course

    return await run_atomic(session, _toggle)


async def promote_course(
    session: AsyncSession,
    course_id: uuid.UUID,
    actor: CurrentUser,
    level: PromotionLevel,
) -> Course:
    async def _promote() -> Course:
        course = await lock_course(session, course_id)
        _assert_owner(course, actor)
        if course.status in _CLOSED:
            raise InvalidState(f"Course is {course.status.value}.")
        _apply_promotion(course, level)
        touch(course)
        logger.info("Course %s promotion → %s", course.id, level.value)
        return course

    return await run_atomic(session, _promote)


async def close_course(
    session: AsyncSession,
    course_id: uuid.UUID,
    actor: CurrentUser,
    target: CourseStatus,
) -> Course:
    if target not in _CLOSED:
        raise ValidationFailed("A course can only be closed as archived or cancelled.")

    async def _close() -> Course:
        course = await lock_course(session, course_id)
        _assert_owner_or_admin(course, actor)
        if course.status in _CLOSED:
            raise InvalidState(f"Course is already {course.status.value}.")
        previous = course.status
        course.status = target
        course.is_published = False
        touch(course)
        logger.info("Course %s: %s → %s", course.id, previous.value, target.value)
        return course

    return await run_atomic(session, _close)


async def delete_course(
    session: AsyncSession, course_id: uuid.UUID, actor: CurrentUser
) -> str | None:
    """Hard-delete a draft that nobody has enrolled in. Returns its syllabus ref."""
    course = await lock_course(session, course_id, with_enrollments=True)
    _assert_owner(course, actor)
    if course.status != CourseStatus.DRAFT:
        raise InvalidState("Only draft courses can be deleted; archive or cancel it instead.")
    if course.enrollments:
        raise InvalidState("Courses with enrollments cannot be deleted.")
    syllabus_ref = course.syllabus_file
    await session.delete(course)
    await session.flush()
    logger.info("Course %s deleted by institution %s", course_id, actor.id)
    return syllabus_ref
