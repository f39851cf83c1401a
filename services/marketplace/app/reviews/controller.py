"""Reviews controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.pagination import PaginatedResponse
from shared.models.user import CurrentUser

from app import policy
from app.exceptions import CourseNotFound, to_http_error
from app.models.enums import ReviewStatus
from app.models.review import Review
from app.reviews import service
from app.reviews.schemas import (
    ModerateReviewRequest,
    ModerationResult,
    RatingSummaryResponse,
    ReviewAuthor,
    ReviewCourse,
    ReviewModeration,
    ReviewResponse,
    SubmitReviewRequest,
    VoteResult,
    VoteReviewRequest,
)


def _loaded(obj, attr: str) -> bool:
    return attr not in inspect(obj).unloaded


def review_view(review: Review, *, full: bool) -> ReviewResponse:
    """Build the public or moderation view of a review from whatever is loaded."""
    data = {
        "id": review.id,
        "course_id": review.course_id,
        "user_id": review.user_id,
        "course_rating": review.course_rating,
        "institute_rating": review.institute_rating,
        "faculty_rating": review.faculty_rating,
        "review_text": review.review_text,
        "status": review.status,
        "is_visible": review.is_visible,
        "is_verified": review.is_verified,
        "helpful_votes": review.helpful_votes,
        "not_helpful_votes": review.not_helpful_votes,
        "created_at": review.created_at,
    }
    if _loaded(review, "author") and review.author is not None:
        data["author"] = ReviewAuthor(id=review.author.id, name=review.author.name)
    if _loaded(review, "course") and review.course is not None:
        data["course"] = ReviewCourse(id=review.course.id, title=review.course.title)
    if full:
        data["moderation"] = ReviewModeration(
            moderated_by=review.moderated_by,
            moderated_at=review.moderated_at,
            rejection_reason=review.rejection_reason,
        )
    return ReviewResponse(**data)


async def submit_review(
    db: AsyncSession, course_id: UUID, user: CurrentUser, body: SubmitReviewRequest
) -> ReviewResponse:
    try:
        review = await service.submit_review(db, course_id, user.id, **body.model_dump())
        await db.commit()
        return review_view(review, full=False)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def moderate_review(
    db: AsyncSession,
    course_id: UUID,
    review_id: UUID,
    moderator: CurrentUser,
    body: ModerateReviewRequest,
) -> ModerationResult:
    try:
        course, review = await service.moderate_review(
            db,
            course_id,
            review_id,
            action=body.action,
            moderator_id=moderator.id,
            rejection_reason=body.rejection_reason,
        )
        await db.commit()
        return ModerationResult(
            review=review_view(review, full=True),
            average_rating=RatingSummaryResponse(
                course=course.rating_course,
                institute=course.rating_institute,
                faculty=course.rating_faculty,
                overall=course.rating_overall,
            ),
            total_reviews=course.total_reviews,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc


async def vote_review(
    db: AsyncSession,
    course_id: UUID,
    review_id: UUID,
    user: CurrentUser,
    body: VoteReviewRequest,
) -> VoteResult:
    try:
        review = await service.vote_review(db, course_id, review_id, user.id, body.vote)
        await db.commit()
        return VoteResult(
            review_id=review.id,
            helpful_votes=review.helpful_votes,
            not_helpful_votes=review.not_helpful_votes,
            your_vote=body.vote,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc


async def list_course_reviews(
    db: AsyncSession, course_id: UUID, viewer: CurrentUser | None
) -> list[ReviewResponse]:
    try:
        course = await service.get_course_with_reviews(db, course_id)
        if not policy.can_view_course(course, viewer):
            raise CourseNotFound(str(course_id))
        full = policy.course_access(course, viewer) is not policy.Access.PUBLIC
        visible = policy.visible_reviews(course, course.reviews, viewer)
        return [review_view(r, full=full) for r in reversed(visible)]
    except Exception as exc:
        raise to_http_error(exc) from exc


async def my_reviews(db: AsyncSession, user: CurrentUser) -> list[ReviewResponse]:
    try:
        reviews = await service.list_user_reviews(db, user.id)
        return [review_view(r, full=True) for r in reviews]
    except Exception as exc:
        raise to_http_error(exc) from exc


async def pending_reviews(
    db: AsyncSession, *, page: int, page_size: int
) -> PaginatedResponse[ReviewResponse]:
    try:
        reviews, total = await service.list_reviews_by_status(
            db, ReviewStatus.PENDING, limit=page_size, offset=(page - 1) * page_size
        )
        return PaginatedResponse[ReviewResponse](
            items=[review_view(r, full=True) for r in reviews],
            total=total,
            page=page,
            page_size=page_size,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc
