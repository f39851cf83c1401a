from __future__ import annotations

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base

from .enums import ReviewStatus, VoteKind, review_status_enum, vote_kind_enum


class Review(Base):
    """One review per (course, user); child of the Course aggregate."""

    __tablename__ = "reviews"
    __table_args__ = (
        sa.UniqueConstraint("course_id", "user_id", name="uq_reviews_course_user"),
        sa.Index("ix_reviews_status_created", "status", "created_at"),
        sa.CheckConstraint("course_rating BETWEEN 1 AND 5", name="ck_reviews_course_rating"),
        sa.CheckConstraint("institute_rating BETWEEN 1 AND 5", name="ck_reviews_institute_rating"),
        sa.CheckConstraint("faculty_rating BETWEEN 1 AND 5", name="ck_reviews_faculty_rating"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_rating: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    institute_rating: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    faculty_rating: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    review_text: Mapped[str] = mapped_column(sa.Text, nullable=False)

    status: Mapped[ReviewStatus] = mapped_column(
        review_status_enum, nullable=False, default=ReviewStatus.PENDING
    )
    # Mirrors status == approved; kept as a column for cheap public filtering
    is_visible: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    # Enrollment badge: reviewer held a completed enrollment at submission time.
    # Set once on insert, never touched by moderation.
    is_verified: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    moderated_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)
    moderated_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)

    helpful_votes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    not_helpful_votes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    course = relationship("Course", back_populates="reviews", lazy="raise")
    author = relationship("User", lazy="raise")
    votes = relationship(
        "ReviewVote",
        back_populates="review",
        lazy="raise",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ReviewVote(Base):
    __tablename__ = "review_votes"
    __table_args__ = (
        sa.UniqueConstraint("review_id", "user_id", name="uq_review_votes_review_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    review_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    vote: Mapped[VoteKind] = mapped_column(vote_kind_enum, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    review = relationship("Review", back_populates="votes", lazy="raise")
