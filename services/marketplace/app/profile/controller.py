"""Profile controller."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app import policy
from app.auth.service import get_user_by_id
from app.exceptions import UserNotFound, to_http_error
from app.profile import service
from app.profile.schemas import (
    InstitutionProfileResponse,
    ProfileResponse,
    UpdateProfileRequest,
)


async def get_profile(db: AsyncSession, user: CurrentUser) -> ProfileResponse:
    try:
        return ProfileResponse.model_validate(await get_user_by_id(db, user.id))
    except Exception as exc:
        raise to_http_error(exc) from exc


async def update_profile(
    db: AsyncSession, user: CurrentUser, body: UpdateProfileRequest
) -> ProfileResponse:
    try:
        updated = await service.update_profile(db, user.id, body.model_dump(exclude_unset=True))
        await db.commit()
        return ProfileResponse.model_validate(updated)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def get_institution(
    db: AsyncSession, institution_id: UUID, viewer: CurrentUser | None
) -> InstitutionProfileResponse:
    try:
        institution, course_count = await service.get_institution(db, institution_id)
        access = policy.resolve_access(institution.id, viewer)
        if access is policy.Access.PUBLIC and not institution.is_active:
            raise UserNotFound(str(institution_id))
        view = policy.institution_profile_view(institution, viewer)
        return InstitutionProfileResponse(**view, course_count=course_count)
    except Exception as exc:
        raise to_http_error(exc) from exc
