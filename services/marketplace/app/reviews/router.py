"""Reviews router — HTTP layer only.

Submission, moderation and helpfulness votes on course reviews.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.dependencies import (
    get_current_user_optional,
    get_current_user_required,
    require_role,
)
from shared.constants import Role
from shared.models.envelope import Envelope
from shared.models.pagination import PaginatedResponse
from shared.models.user import CurrentUser

from app.database import get_db
from app.reviews import controller
from app.reviews.schemas import (
    ModerateReviewRequest,
    ModerationResult,
    ReviewResponse,
    SubmitReviewRequest,
    VoteResult,
    VoteReviewRequest,
)

router = APIRouter(tags=["Reviews"])


@router.post(
    "/courses/{course_id}/reviews",
    response_model=Envelope[ReviewResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Submit a review",
    description="Aspirant reviews a published course. One review per user per course; "
    "it stays pending (invisible, not counted in ratings) until an admin approves it.",
)
async def submit_review(
    course_id: UUID,
    body: SubmitReviewRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.ASPIRANT)),
) -> Envelope[ReviewResponse]:
    review = await controller.submit_review(db, course_id, user, body)
    return Envelope(data=review, message="Review submitted and awaiting moderation.")


@router.get(
    "/courses/{course_id}/reviews",
    response_model=Envelope[list[ReviewResponse]],
    summary="List reviews of a course",
    description="Public readers see approved reviews only. The owning institution "
    "and admins see every review with its moderation trail.",
)
async def list_course_reviews(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    viewer: CurrentUser | None = Depends(get_current_user_optional),
) -> Envelope[list[ReviewResponse]]:
    return Envelope(data=await controller.list_course_reviews(db, course_id, viewer))


@router.patch(
    "/courses/{course_id}/reviews/{review_id}/moderate",
    response_model=Envelope[ModerationResult],
    summary="Moderate a review (admin)",
    description="approve | reject (reason required) | archive. "
    "The course rating is recomputed in the same transaction.",
)
async def moderate_review(
    course_id: UUID,
    review_id: UUID,
    body: ModerateReviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_role(Role.ADMIN)),
) -> Envelope[ModerationResult]:
    result = await controller.moderate_review(db, course_id, review_id, admin, body)
    return Envelope(data=result, message=f"Review {result.review.status.value}.")


@router.post(
    "/courses/{course_id}/reviews/{review_id}/vote",
    response_model=Envelope[VoteResult],
    summary="Vote on a review",
    description="Mark an approved review helpful or not helpful. "
    "Voting again with the other choice flips the vote.",
)
async def vote_review(
    course_id: UUID,
    review_id: UUID,
    body: VoteReviewRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user_required),
) -> Envelope[VoteResult]:
    return Envelope(data=await controller.vote_review(db, course_id, review_id, user, body))


@router.get(
    "/reviews/mine",
    response_model=Envelope[list[ReviewResponse]],
    summary="My reviews",
)
async def my_reviews(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user_required),
) -> Envelope[list[ReviewResponse]]:
    return Envelope(data=await controller.my_reviews(db, user))


@router.get(
    "/admin/reviews/pending",
    response_model=Envelope[PaginatedResponse[ReviewResponse]],
    tags=["Admin"],
    summary="Pending review queue (admin)",
)
async def pending_reviews(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_role(Role.ADMIN)),
) -> Envelope[PaginatedResponse[ReviewResponse]]:
    return Envelope(data=await controller.pending_reviews(db, page=page, page_size=page_size))
