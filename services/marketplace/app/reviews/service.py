"""
Reviews domain — pure business logic (zero FastAPI imports).

Review moderation state machine:
  (new)     → PENDING     submit_review()
  PENDING   → APPROVED    moderate_review(approve)
  PENDING   → REJECTED    moderate_review(reject, reason)
  REJECTED  → APPROVED    moderate_review(approve)
  APPROVED  → REJECTED    moderate_review(reject, reason)
  APPROVED  → ARCHIVED    moderate_review(archive)
  REJECTED  → ARCHIVED    moderate_review(archive)
  ARCHIVED  → (terminal)

Every transition recomputes the course rating in the same unit of work, while
the course row is held (see app.concurrency). Pending reviews never count.

Transaction contract: these functions only flush(); the controller commits.
"""
from __future__ import annotations

import logging
import uuid

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.clock import utcnow
from app.concurrency import lock_course, run_atomic, touch
from app.exceptions import (
    Conflict,
    CourseNotFound,
    DuplicateReview,
    InvalidState,
    ReviewNotFound,
    ValidationFailed,
)
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import ModerationAction, PaymentStatus, ReviewStatus, VoteKind
from app.models.review import Review, ReviewVote
from app.reviews import ratings

logger = logging.getLogger(__name__)

MAX_REVIEW_LENGTH = 1000
MAX_REJECTION_REASON_LENGTH = 500

_ACTION_TARGET: dict[ModerationAction, ReviewStatus] = {
    ModerationAction.APPROVE: ReviewStatus.APPROVED,
    ModerationAction.REJECT: ReviewStatus.REJECTED,
    ModerationAction.ARCHIVE: ReviewStatus.ARCHIVED,
}

_ALLOWED_TRANSITIONS: dict[ReviewStatus, frozenset[ReviewStatus]] = {
    ReviewStatus.PENDING: frozenset({ReviewStatus.APPROVED, ReviewStatus.REJECTED}),
    ReviewStatus.APPROVED: frozenset({ReviewStatus.REJECTED, ReviewStatus.ARCHIVED}),
    ReviewStatus.REJECTED: frozenset({ReviewStatus.APPROVED, ReviewStatus.ARCHIVED}),
    ReviewStatus.ARCHIVED: frozenset(),
}


def _validate_review_input(ratings_: tuple[int, int, int], review_text: str) -> str:
    for value in ratings_:
        if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= 5:
            raise ValidationFailed("Ratings must be whole numbers between 1 and 5.")
    text = (review_text or "").strip()
    if not text:
        raise ValidationFailed("Review text is required.")
    if len(text) > MAX_REVIEW_LENGTH:
        raise ValidationFailed(f"Review text cannot exceed {MAX_REVIEW_LENGTH} characters.")
    return text


def _find_review(course: Course, review_id: uuid.UUID) -> Review:
    for review in course.reviews:
        if review.id == review_id:
            return review
    raise ReviewNotFound(str(review_id))


async def _has_completed_enrollment(
    session: AsyncSession, course_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    result = await session.execute(
        sa.select(Enrollment.id).where(
            Enrollment.course_id == course_id,
            Enrollment.user_id == user_id,
            Enrollment.payment_status == PaymentStatus.COMPLETED,
        )
    )
    return result.first() is not None


# ── Submission ────────────────────────────────────────────────────────────────

async def submit_review(
    session: AsyncSession,
    course_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    course_rating: int,
    institute_rating: int,
    faculty_rating: int,
    review_text: str,
) -> Review:
    """Append a PENDING review. Ratings are untouched until moderation."""
    text = _validate_review_input((course_rating, institute_rating, faculty_rating), review_text)

    async def _submit() -> Review:
        course = await lock_course(session, course_id, with_reviews=True)
        if not course.is_live:
            raise CourseNotFound(str(course_id))
        # Any prior review blocks, whatever its moderation status
        if any(r.user_id == user_id for r in course.reviews):
            raise DuplicateReview()

        review = Review(
            course_id=course.id,
            user_id=user_id,
            course_rating=course_rating,
            institute_rating=institute_rating,
            faculty_rating=faculty_rating,
            review_text=text,
            status=ReviewStatus.PENDING,
            is_visible=False,
            is_verified=await _has_completed_enrollment(session, course.id, user_id),
        )
        course.reviews.append(review)
        touch(course)
        return review

    try:
        review = await run_atomic(session, _submit)
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateReview() from exc
    logger.info("Review %s submitted on course %s by %s", review.id, course_id, user_id)
    return review


# ── Moderation ────────────────────────────────────────────────────────────────

async def moderate_review(
    session: AsyncSession,
    course_id: uuid.UUID,
    review_id: uuid.UUID,
    *,
    action: ModerationAction,
    moderator_id: uuid.UUID,
    rejection_reason: str | None = None,
) -> tuple[Course, Review]:
    """Apply a moderation action and recompute the course rating atomically."""
    reason = (rejection_reason or "").strip()
    if action == ModerationAction.REJECT:
        if not reason:
            raise ValidationFailed("A rejection reason is required.")
        if len(reason) > MAX_REJECTION_REASON_LENGTH:
            raise ValidationFailed(
                f"Rejection reason cannot exceed {MAX_REJECTION_REASON_LENGTH} characters."
            )
    target = _ACTION_TARGET[action]

    async def _moderate() -> tuple[Course, Review]:
        course = await lock_course(session, course_id, with_reviews=True)
        review = _find_review(course, review_id)
        if target not in _ALLOWED_TRANSITIONS[review.status]:
            raise InvalidState(
                f"Cannot {action.value} a review that is {review.status.value}."
            )

        previous = review.status
        review.status = target
        review.is_visible = target == ReviewStatus.APPROVED
        review.moderated_by = moderator_id
        review.moderated_at = utcnow()
        if target == ReviewStatus.APPROVED:
            review.rejection_reason = None
        elif target == ReviewStatus.REJECTED:
            review.rejection_reason = reason

        ratings.recompute(course)
        touch(course)
        logger.info(
            "Review %s on course %s: %s → %s by %s",
            review.id, course.id, previous.value, target.value, moderator_id,
        )
        return course, review

    return await run_atomic(session, _moderate)


# ── Helpfulness votes ─────────────────────────────────────────────────────────

def _adjust_tally(review: Review, vote: VoteKind, delta: int) -> None:
    if vote == VoteKind.HELPFUL:
        review.helpful_votes = max(0, review.helpful_votes + delta)
    else:
        review.not_helpful_votes = max(0, review.not_helpful_votes + delta)


async def vote_review(
    session: AsyncSession,
    course_id: uuid.UUID,
    review_id: uuid.UUID,
    user_id: uuid.UUID,
    vote: VoteKind,
) -> Review:
    """Record or flip a user's vote. Re-casting the same vote changes nothing."""

    async def _vote() -> Review:
        course = await lock_course(session, course_id, with_votes=True)
        review = _find_review(course, review_id)
        if review.status != ReviewStatus.APPROVED:
            raise InvalidState("Only approved reviews can be voted on.")

        existing = next((v for v in review.votes if v.user_id == user_id), None)
        if existing is None:
            review.votes.append(ReviewVote(review_id=review.id, user_id=user_id, vote=vote))
            _adjust_tally(review, vote, +1)
        elif existing.vote != vote:
            _adjust_tally(review, existing.vote, -1)
            _adjust_tally(review, vote, +1)
            existing.vote = vote
        else:
            return review
        touch(course)
        return review

    try:
        return await run_atomic(session, _vote)
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict("Vote already recorded. Please retry.") from exc


# ── Reads ─────────────────────────────────────────────────────────────────────

async def get_course_with_reviews(session: AsyncSession, course_id: uuid.UUID) -> Course:
    result = await session.execute(
        sa.select(Course)
        .options(selectinload(Course.reviews).selectinload(Review.author))
        .where(Course.id == course_id)
    )
    course = result.scalar_one_or_none()
    if course is None:
        raise CourseNotFound(str(course_id))
    return course


async def list_user_reviews(session: AsyncSession, user_id: uuid.UUID) -> list[Review]:
    result = await session.execute(
        sa.select(Review)
        .options(selectinload(Review.course))
        .where(Review.user_id == user_id)
        .order_by(Review.created_at.desc())
    )
    return list(result.scalars().all())


async def list_reviews_by_status(
    session: AsyncSession,
    status: ReviewStatus,
    *,
    limit: int,
    offset: int,
) -> tuple[list[Review], int]:
    """Moderation queue: newest first."""
    total = (
        await session.execute(
            sa.select(sa.func.count()).select_from(Review).where(Review.status == status)
        )
    ).scalar_one()
    result = await session.execute(
        sa.select(Review)
        .options(selectinload(Review.course), selectinload(Review.author))
        .where(Review.status == status)
        .order_by(Review.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


async def list_institution_reviews(
    session: AsyncSession,
    institution_id: uuid.UUID,
    *,
    status: ReviewStatus | None = None,
) -> list[Review]:
    stmt = (
        sa.select(Review)
        .join(Course, Course.id == Review.course_id)
        .options(selectinload(Review.course), selectinload(Review.author))
        .where(Course.institution_id == institution_id)
        .order_by(Review.created_at.desc())
    )
    if status is not None:
        stmt = stmt.where(Review.status == status)
    result = await session.execute(stmt)
    return list(result.scalars().all())
