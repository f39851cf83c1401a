"""
Course — the aggregate root of the marketplace.

A course owns its reviews and enrollments (child tables, cascade on delete).
The derived columns (rating averages, ``total_reviews``,
``current_enrollments``) are only ever written by the review and enrollment
services while they hold the course row; ``version`` is the optimistic
concurrency token checked on every UPDATE of this row.

Status transitions:

    draft ──publish──▶ published ◀──admin──▶ suspended
      │                   │                      │
      └──────────────┬────┴──────────────────────┘
                     ▼
            archived | cancelled   (terminal)
"""
from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base

from .enums import (
    CourseCategory,
    CourseStatus,
    DeliveryType,
    PromotionLevel,
    course_category_enum,
    course_status_enum,
    delivery_type_enum,
    promotion_level_enum,
)


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    institution_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # ── Descriptive ───────────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False)
    duration: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    course_category: Mapped[CourseCategory] = mapped_column(course_category_enum, nullable=False)
    subjects: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    course_languages: Mapped[list[str]] = mapped_column(
        sa.JSON, nullable=False, default=lambda: ["english"]
    )
    course_types: Mapped[list[str]] = mapped_column(
        sa.JSON, nullable=False, default=lambda: ["online"]
    )
    delivery_type: Mapped[DeliveryType] = mapped_column(
        delivery_type_enum, nullable=False, default=DeliveryType.LIVE
    )
    # [{name, qualification, experience, subject}]
    faculty: Mapped[list[dict]] = mapped_column(sa.JSON, nullable=False, default=list)
    # [{topic, subtopics, duration}]
    syllabus_details: Mapped[list[dict]] = mapped_column(sa.JSON, nullable=False, default=list)
    # [{day, sessions: [{start_time, end_time, subject, faculty, type}]}]
    weekly_schedule: Mapped[list[dict]] = mapped_column(sa.JSON, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    search_keywords: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    cover_image: Mapped[str] = mapped_column(
        sa.String(500), nullable=False, default="default-course.jpg"
    )
    # Blob store reference, never a URL
    syllabus_file: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)

    # ── Location (required for offline / hybrid) ──────────────────────────────
    city: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    address: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)

    # ── Pricing ───────────────────────────────────────────────────────────────
    price: Mapped[Decimal] = mapped_column(sa.Numeric(10, 2), nullable=False)
    original_price: Mapped[Decimal] = mapped_column(sa.Numeric(10, 2), nullable=False)
    discount: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False, default=0)

    # ── Schedule ──────────────────────────────────────────────────────────────
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    enrollment_deadline: Mapped[date | None] = mapped_column(sa.Date, nullable=True)

    # ── Lifecycle ─────────────────────────────────────────────────────────────
    is_published: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    status: Mapped[CourseStatus] = mapped_column(
        course_status_enum, nullable=False, default=CourseStatus.DRAFT
    )
    promotion_level: Mapped[PromotionLevel] = mapped_column(
        promotion_level_enum, nullable=False, default=PromotionLevel.NONE
    )
    is_featured: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    # {action, reason, action_by, action_at} — last admin publication decision
    admin_action: Mapped[dict | None] = mapped_column(sa.JSON, nullable=True)

    # ── Capacity (0 = unlimited) ──────────────────────────────────────────────
    max_students: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    current_enrollments: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    # ── Ratings (derived from approved reviews) ───────────────────────────────
    rating_course: Mapped[float] = mapped_column(sa.Float, nullable=False, default=0.0)
    rating_institute: Mapped[float] = mapped_column(sa.Float, nullable=False, default=0.0)
    rating_faculty: Mapped[float] = mapped_column(sa.Float, nullable=False, default=0.0)
    rating_overall: Mapped[float] = mapped_column(sa.Float, nullable=False, default=0.0)
    total_reviews: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    # ── Engagement counters ───────────────────────────────────────────────────
    views: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    shortlisted: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    institution = relationship("User", lazy="raise")
    reviews = relationship(
        "Review",
        back_populates="course",
        lazy="raise",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Review.created_at",
    )
    enrollments = relationship(
        "Enrollment",
        back_populates="course",
        lazy="raise",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Enrollment.enrolled_at",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        sa.Index("ix_courses_institution_created", "institution_id", "created_at"),
        sa.Index("ix_courses_listing", "is_published", "status", "created_at"),
        sa.Index("ix_courses_category", "course_category"),
        sa.Index("ix_courses_city_state", "city", "state"),
        sa.Index("ix_courses_start_date", "start_date"),
        sa.Index("ix_courses_rating_overall", "rating_overall"),
        sa.Index("ix_courses_views", "views"),
        sa.Index("ix_courses_price", "price"),
        sa.CheckConstraint("price >= 0", name="ck_courses_price_non_negative"),
        sa.CheckConstraint("discount BETWEEN 0 AND 100", name="ck_courses_discount_range"),
        sa.CheckConstraint("max_students >= 0", name="ck_courses_max_students_non_negative"),
        sa.CheckConstraint("shortlisted >= 0", name="ck_courses_shortlisted_non_negative"),
    )

    @property
    def average_rating(self) -> dict[str, float]:
        return {
            "course": self.rating_course,
            "institute": self.rating_institute,
            "faculty": self.rating_faculty,
            "overall": self.rating_overall,
        }

    @property
    def has_syllabus(self) -> bool:
        return bool(self.syllabus_file)

    @property
    def is_live(self) -> bool:
        """Visible to the public catalogue."""
        return self.is_published and self.status == CourseStatus.PUBLISHED

    @property
    def has_capacity(self) -> bool:
        return self.max_students == 0 or self.current_enrollments < self.max_students

    @property
    def enrollment_cutoff(self) -> date:
        """Last day to enroll. A deadline may close enrollment early, never after the start."""
        if self.enrollment_deadline is None:
            return self.start_date
        return min(self.enrollment_deadline, self.start_date)
