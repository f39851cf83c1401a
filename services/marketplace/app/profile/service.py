"""
Profiles — self-service account edits and institution lookup.

Only flush(); the controller commits.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.constants import Role

from app.auth.service import get_user_by_email, get_user_by_id
from app.auth.utils import normalize_email
from app.exceptions import Conflict, Forbidden, UserNotFound
from app.models.course import Course
from app.models.enums import CourseStatus
from app.models.user import User

logger = logging.getLogger(__name__)

_INSTITUTION_FIELDS = frozenset({
    "institution_name", "institution_type", "contact_person", "address", "website", "description",
})


async def update_profile(
    session: AsyncSession, user_id: uuid.UUID, changes: dict[str, Any]
) -> User:
    user = await get_user_by_id(session, user_id)
    institution_only = _INSTITUTION_FIELDS.intersection(changes)
    if institution_only and user.role != Role.INSTITUTION:
        raise Forbidden(f"Only institutions can set: {', '.join(sorted(institution_only))}.")

    if "email" in changes and changes["email"] is not None:
        email = normalize_email(changes.pop("email"))
        if email != user.email:
            if await get_user_by_email(session, email) is not None:
                raise Conflict("Email already registered.")
            user.email = email

    for field, value in changes.items():
        if field == "email":
            continue
        if field in ("name", "institution_name", "institution_type") and value is None:
            continue
        setattr(user, field, value)

    try:
        await session.flush()
    except IntegrityError as exc:
        raise Conflict("Email already registered.") from exc
    logger.info("User %s updated profile fields %s", user.id, sorted(changes))
    return user


async def get_institution(session: AsyncSession, institution_id: uuid.UUID) -> tuple[User, int]:
    """Return the institution and how many live courses it has."""
    user = await session.get(User, institution_id)
    if user is None or user.role != Role.INSTITUTION:
        raise UserNotFound(str(institution_id))
    count = (
        await session.execute(
            sa.select(sa.func.count())
            .select_from(Course)
            .where(
                Course.institution_id == institution_id,
                Course.is_published.is_(True),
                Course.status == CourseStatus.PUBLISHED,
            )
        )
    ).scalar_one()
    return user, count
