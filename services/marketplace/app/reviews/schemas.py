"""Reviews domain Pydantic V2 schemas.

Public readers get ``ReviewResponse`` with ``moderation`` left empty; the
owning institution and admins also get the moderation trail.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import ModerationAction, ReviewStatus, VoteKind


class SubmitReviewRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    course_rating: int = Field(ge=1, le=5, strict=True)
    institute_rating: int = Field(ge=1, le=5, strict=True)
    faculty_rating: int = Field(ge=1, le=5, strict=True)
    review_text: str = Field(min_length=1, max_length=1000)


class ModerateReviewRequest(BaseModel):
    action: ModerationAction
    rejection_reason: str | None = Field(
        default=None,
        max_length=500,
        description="Required when action is 'reject'.",
    )


class VoteReviewRequest(BaseModel):
    vote: VoteKind


class RatingSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course: float
    institute: float
    faculty: float
    overall: float


class ReviewAuthor(BaseModel):
    id: UUID
    name: str


class ReviewCourse(BaseModel):
    id: UUID
    title: str


class ReviewModeration(BaseModel):
    moderated_by: UUID | None = None
    moderated_at: datetime | None = None
    rejection_reason: str | None = None


class ReviewResponse(BaseModel):
    id: UUID
    course_id: UUID
    user_id: UUID
    author: ReviewAuthor | None = None
    course: ReviewCourse | None = None
    course_rating: int
    institute_rating: int
    faculty_rating: int
    review_text: str
    status: ReviewStatus
    is_visible: bool
    is_verified: bool
    helpful_votes: int
    not_helpful_votes: int
    created_at: datetime
    moderation: ReviewModeration | None = None


class ModerationResult(BaseModel):
    review: ReviewResponse
    average_rating: RatingSummaryResponse
    total_reviews: int


class VoteResult(BaseModel):
    review_id: UUID
    helpful_votes: int
    not_helpful_votes: int
    your_vote: VoteKind
