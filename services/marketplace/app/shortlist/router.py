"""Shortlist router — HTTP layer only."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.dependencies import require_role
from shared.constants import Role
from shared.models.envelope import Envelope
from shared.models.user import CurrentUser

from app.database import get_db
from app.shortlist import controller
from app.shortlist.schemas import AddToShortlistRequest, ShortlistResponse, UpdateNotesRequest

router = APIRouter(prefix="/shortlist", tags=["Shortlist"])

_aspirant = require_role(Role.ASPIRANT)


@router.get("", response_model=Envelope[ShortlistResponse], summary="My shortlist")
async def get_shortlist(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(_aspirant),
) -> Envelope[ShortlistResponse]:
    return Envelope(data=await controller.get_shortlist(db, user))


@router.post(
    "",
    response_model=Envelope[ShortlistResponse],
    summary="Save a course",
    description="Idempotent: saving a course twice only updates its notes.",
)
async def add_course(
    body: AddToShortlistRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(_aspirant),
) -> Envelope[ShortlistResponse]:
    shortlist, added = await controller.add_course(db, user, body)
    message = "Course added to shortlist." if added else "Course already in shortlist."
    return Envelope(data=shortlist, message=message)


@router.patch(
    "/{course_id}",
    response_model=Envelope[ShortlistResponse],
    summary="Edit notes on a saved course",
)
async def update_notes(
    course_id: UUID,
    body: UpdateNotesRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(_aspirant),
) -> Envelope[ShortlistResponse]:
    return Envelope(data=await controller.update_notes(db, user, course_id, body))


@router.delete(
    "/{course_id}",
    response_model=Envelope[ShortlistResponse],
    summary="Remove a saved course",
)
async def remove_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(_aspirant),
) -> Envelope[ShortlistResponse]:
    shortlist = await controller.remove_course(db, user, course_id)
    return Envelope(data=shortlist, message="Course removed from shortlist.")
