"""Profile router — the caller's account and institution pages."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.dependencies import get_current_user_optional, get_current_user_required
from shared.models.envelope import Envelope
from shared.models.user import CurrentUser

from app.database import get_db
from app.profile import controller
from app.profile.schemas import (
    InstitutionProfileResponse,
    ProfileResponse,
    UpdateProfileRequest,
)

router = APIRouter(tags=["Profile"])


@router.get("/users/me", response_model=Envelope[ProfileResponse], summary="My profile")
async def get_profile(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user_required),
) -> Envelope[ProfileResponse]:
    return Envelope(data=await controller.get_profile(db, user))


@router.patch(
    "/users/me",
    response_model=Envelope[ProfileResponse],
    summary="Update my profile",
    description="Name and email for every role. Institution name, type, contact person, "
    "address, website and description are accepted from institutions only.",
)
async def update_profile(
    body: UpdateProfileRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user_required),
) -> Envelope[ProfileResponse]:
    profile = await controller.update_profile(db, user, body)
    return Envelope(data=profile, message="Profile updated.")


@router.get(
    "/institutions/{institution_id}",
    response_model=Envelope[InstitutionProfileResponse],
    summary="Institution profile",
    description="Contact person, street address and email are shown to the institution "
    "itself and admins only.",
)
async def get_institution(
    institution_id: UUID,
    db: AsyncSession = Depends(get_db),
    viewer: CurrentUser | None = Depends(get_current_user_optional),
) -> Envelope[InstitutionProfileResponse]:
    return Envelope(data=await controller.get_institution(db, institution_id, viewer))
