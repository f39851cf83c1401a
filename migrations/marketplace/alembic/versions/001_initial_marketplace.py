"""Full marketplace schema: users, courses, reviews, review_votes, enrollments, shortlists

Revision ID: 001
Revises:
Create Date: 2026-10-17

Tables created:
  - users            Aspirant, institution and admin accounts; institution profile
  - courses          Aggregate root; derived rating / enrollment columns, version token
  - reviews          One per (course, user); moderation trail
  - review_votes     One helpfulness vote per (review, user)
  - enrollments      One per (course, user); payment status
  - shortlists       One per user
  - shortlist_items  Saved courses with notes

PostgreSQL-native ENUM types created:
  - user_role, institution_type, course_status, promotion_level,
    course_category, delivery_type, payment_status, review_status, vote_kind

Downgrade: drops all tables and ENUM types in reverse dependency order.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ENUMS: dict[str, tuple[str, ...]] = {
    "user_role": ("aspirant", "institution", "admin"),
    "institution_type": ("coaching", "university", "college", "other"),
    "course_status": ("draft", "published", "suspended", "archived", "cancelled"),
    "promotion_level": ("none", "basic", "premium", "featured"),
    "course_category": (
        "prelims", "mains", "prelims-cum-mains", "optionals",
        "test-series", "foundation", "interview",
    ),
    "delivery_type": ("live", "recorded", "hybrid"),
    "payment_status": ("pending", "completed", "failed"),
    "review_status": ("pending", "approved", "rejected", "archived"),
    "vote_kind": ("helpful", "not_helpful"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("NOW()")),
    ]


# ─────────────────────────────────────────────────────────────────────────────
#  UPGRADE
# ─────────────────────────────────────────────────────────────────────────────

def upgrade() -> None:
    # ── 1. PostgreSQL ENUM types ──────────────────────────────────────────────
    # PostgreSQL has no CREATE TYPE IF NOT EXISTS, so we use a DO/EXCEPTION block.
    for name, values in _ENUMS.items():
        labels = ", ".join(f"'{v}'" for v in values)
        op.execute(
            f"""
            DO $$ BEGIN
                CREATE TYPE {name} AS ENUM ({labels});
            EXCEPTION WHEN duplicate_object THEN NULL;
            END $$;
            """
        )

    # ── 2. users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False,
                  server_default=sa.text("'aspirant'")),
        # Institution profile
        sa.Column("institution_name", sa.String(200), nullable=True),
        sa.Column("institution_type", _enum("institution_type"), nullable=True),
        sa.Column("contact_person", sa.JSON(), nullable=True),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("website", sa.String(300), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        # Status
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("login_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("login_count >= 0", name="ck_users_login_count_non_negative"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_role_is_active", "users", ["role", "is_active"])

    # ── 3. courses ────────────────────────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("institution_id", postgresql.UUID(as_uuid=True), nullable=False),
        # Descriptive
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("duration", sa.String(100), nullable=False),
        sa.Column("course_category", _enum("course_category"), nullable=False),
        sa.Column("subjects", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("course_languages", sa.JSON(), nullable=False,
                  server_default=sa.text("'[\"english\"]'")),
        sa.Column("course_types", sa.JSON(), nullable=False,
                  server_default=sa.text("'[\"online\"]'")),
        sa.Column("delivery_type", _enum("delivery_type"), nullable=False,
                  server_default=sa.text("'live'")),
        sa.Column("faculty", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("syllabus_details", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("weekly_schedule", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("tags", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("search_keywords", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("cover_image", sa.String(500), nullable=False,
                  server_default=sa.text("'default-course.jpg'")),
        sa.Column("syllabus_file", sa.String(500), nullable=True),
        # Location
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        # Pricing
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("original_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        # Schedule
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("enrollment_deadline", sa.Date(), nullable=True),
        # Lifecycle
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("status", _enum("course_status"), nullable=False,
                  server_default=sa.text("'draft'")),
        sa.Column("promotion_level", _enum("promotion_level"), nullable=False,
                  server_default=sa.text("'none'")),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("admin_action", sa.JSON(), nullable=True),
        # Capacity
        sa.Column("max_students", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_enrollments", sa.Integer(), nullable=False, server_default=sa.text("0")),
        # Ratings
        sa.Column("rating_course", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("rating_institute", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("rating_faculty", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("rating_overall", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default=sa.text("0")),
        # Engagement
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("shortlisted", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_courses"),
        sa.ForeignKeyConstraint(["institution_id"], ["users.id"],
                                name="fk_courses_institution_id", ondelete="CASCADE"),
        sa.CheckConstraint("price >= 0", name="ck_courses_price_non_negative"),
        sa.CheckConstraint("discount BETWEEN 0 AND 100", name="ck_courses_discount_range"),
        sa.CheckConstraint("max_students >= 0", name="ck_courses_max_students_non_negative"),
        sa.CheckConstraint("shortlisted >= 0", name="ck_courses_shortlisted_non_negative"),
    )
    op.create_index("ix_courses_institution_created", "courses", ["institution_id", "created_at"])
    op.create_index("ix_courses_listing", "courses", ["is_published", "status", "created_at"])
    op.create_index("ix_courses_category", "courses", ["course_category"])
    op.create_index("ix_courses_city_state", "courses", ["city", "state"])
    op.create_index("ix_courses_start_date", "courses", ["start_date"])
    op.create_index("ix_courses_rating_overall", "courses", ["rating_overall"])
    op.create_index("ix_courses_views", "courses", ["views"])
    op.create_index("ix_courses_price", "courses", ["price"])

    # ── 4. reviews + review_votes ─────────────────────────────────────────────
    op.create_table(
        "reviews",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("course_rating", sa.SmallInteger(), nullable=False),
        sa.Column("institute_rating", sa.SmallInteger(), nullable=False),
        sa.Column("faculty_rating", sa.SmallInteger(), nullable=False),
        sa.Column("review_text", sa.Text(), nullable=False),
        sa.Column("status", _enum("review_status"), nullable=False,
                  server_default=sa.text("'pending'")),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("moderated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("moderated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(500), nullable=True),
        sa.Column("helpful_votes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("not_helpful_votes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_reviews"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"],
                                name="fk_reviews_course_id", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"],
                                name="fk_reviews_user_id", ondelete="CASCADE"),
        sa.UniqueConstraint("course_id", "user_id", name="uq_reviews_course_user"),
        sa.CheckConstraint("course_rating BETWEEN 1 AND 5", name="ck_reviews_course_rating"),
        sa.CheckConstraint("institute_rating BETWEEN 1 AND 5", name="ck_reviews_institute_rating"),
        sa.CheckConstraint("faculty_rating BETWEEN 1 AND 5", name="ck_reviews_faculty_rating"),
    )
    op.create_index("ix_reviews_course_id", "reviews", ["course_id"])
    op.create_index("ix_reviews_user_id", "reviews", ["user_id"])
    op.create_index("ix_reviews_status_created", "reviews", ["status", "created_at"])

    op.create_table(
        "review_votes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("review_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("vote", _enum("vote_kind"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("NOW()")),
        sa.PrimaryKeyConstraint("id", name="pk_review_votes"),
        sa.ForeignKeyConstraint(["review_id"], ["reviews.id"],
                                name="fk_review_votes_review_id", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"],
                                name="fk_review_votes_user_id", ondelete="CASCADE"),
        sa.UniqueConstraint("review_id", "user_id", name="uq_review_votes_review_user"),
    )
    op.create_index("ix_review_votes_review_id", "review_votes", ["review_id"])

    # ── 5. enrollments ────────────────────────────────────────────────────────
    op.create_table(
        "enrollments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("payment_status", _enum("payment_status"), nullable=False,
                  server_default=sa.text("'pending'")),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("NOW()")),
        sa.PrimaryKeyConstraint("id", name="pk_enrollments"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"],
                                name="fk_enrollments_course_id", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"],
                                name="fk_enrollments_user_id", ondelete="CASCADE"),
        sa.UniqueConstraint("course_id", "user_id", name="uq_enrollments_course_user"),
        sa.CheckConstraint("amount >= 0", name="ck_enrollments_amount_non_negative"),
    )
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index("ix_enrollments_user_status", "enrollments", ["user_id", "payment_status"])

    # ── 6. shortlists + shortlist_items ───────────────────────────────────────
    op.create_table(
        "shortlists",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_shortlists"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"],
                                name="fk_shortlists_user_id", ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_shortlists_user_id"),
    )

    op.create_table(
        "shortlist_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("shortlist_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("NOW()")),
        sa.PrimaryKeyConstraint("id", name="pk_shortlist_items"),
        sa.ForeignKeyConstraint(["shortlist_id"], ["shortlists.id"],
                                name="fk_shortlist_items_shortlist_id", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"],
                                name="fk_shortlist_items_course_id", ondelete="CASCADE"),
        sa.UniqueConstraint("shortlist_id", "course_id", name="uq_shortlist_items_course"),
    )
    op.create_index("ix_shortlist_items_shortlist_id", "shortlist_items", ["shortlist_id"])
    op.create_index("ix_shortlist_items_course_id", "shortlist_items", ["course_id"])


# ─────────────────────────────────────────────────────────────────────────────
#  DOWNGRADE
# ─────────────────────────────────────────────────────────────────────────────

def downgrade() -> None:
    for table in (
        "shortlist_items",
        "shortlists",
        "enrollments",
        "review_votes",
        "reviews",
        "courses",
        "users",
    ):
        op.drop_table(table)
    for name in reversed(list(_ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
