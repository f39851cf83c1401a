"""
Marketplace user accounts.

One table for all three roles. Institution accounts additionally carry the
provider profile (name, type, contact person, address) and the admin
verification stamp. Accounts are never hard-deleted; ``is_active`` is the
soft-deactivation switch.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from shared.constants import Role
from shared.database.postgres import Base

from .enums import InstitutionType, institution_type_enum, user_role_enum


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        sa.Index("ix_users_role_is_active", "role", "is_active"),
        sa.CheckConstraint("login_count >= 0", name="ck_users_login_count_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    # stored lower-cased; lookups are case-insensitive
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    role: Mapped[Role] = mapped_column(user_role_enum, nullable=False, default=Role.ASPIRANT)

    # ── Institution profile ───────────────────────────────────────────────────
    institution_name: Mapped[str | None] = mapped_column(sa.String(200), nullable=True)
    institution_type: Mapped[InstitutionType | None] = mapped_column(
        institution_type_enum, nullable=True
    )
    # {name, email, phone}
    contact_person: Mapped[dict | None] = mapped_column(sa.JSON, nullable=True)
    # {line1, city, state, pincode}
    address: Mapped[dict | None] = mapped_column(sa.JSON, nullable=True)
    website: Mapped[str | None] = mapped_column(sa.String(300), nullable=True)
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    # ── Status ────────────────────────────────────────────────────────────────
    is_verified: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    verified_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    verified_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    login_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_institution(self) -> bool:
        return self.role == Role.INSTITUTION

    @property
    def can_publish(self) -> bool:
        """Verified, active institutions may put courses in front of the public."""
        return self.is_institution and self.is_verified and self.is_active
