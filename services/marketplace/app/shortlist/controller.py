"""Shortlist controller."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.courses.controller import course_summary
from app.exceptions import to_http_error
from app.models.shortlist import Shortlist
from app.shortlist import service
from app.shortlist.schemas import (
    AddToShortlistRequest,
    ShortlistItemResponse,
    ShortlistResponse,
    UpdateNotesRequest,
)


def shortlist_view(shortlist: Shortlist) -> ShortlistResponse:
    return ShortlistResponse(
        id=shortlist.id,
        user_id=shortlist.user_id,
        updated_at=shortlist.updated_at,
        items=[
            ShortlistItemResponse(
                course_id=item.course_id,
                notes=item.notes,
                added_at=item.added_at,
                course=course_summary(item.course) if item.course is not None else None,
            )
            for item in shortlist.items
        ],
    )


async def get_shortlist(db: AsyncSession, user: CurrentUser) -> ShortlistResponse:
    try:
        shortlist = await service.get_shortlist(db, user.id)
        await db.commit()
        return shortlist_view(shortlist)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def add_course(
    db: AsyncSession, user: CurrentUser, body: AddToShortlistRequest
) -> tuple[ShortlistResponse, bool]:
    try:
        shortlist, added = await service.add_course(db, user.id, body.course_id, body.notes)
        await db.commit()
        return shortlist_view(shortlist), added
    except Exception as exc:
        raise to_http_error(exc) from exc


async def remove_course(db: AsyncSession, user: CurrentUser, course_id: UUID) -> ShortlistResponse:
    try:
        shortlist = await service.remove_course(db, user.id, course_id)
        await db.commit()
        return shortlist_view(shortlist)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def update_notes(
    db: AsyncSession, user: CurrentUser, course_id: UUID, body: UpdateNotesRequest
) -> ShortlistResponse:
    try:
        shortlist = await service.update_notes(db, user.id, course_id, body.notes)
        await db.commit()
        return shortlist_view(shortlist)
    except Exception as exc:
        raise to_http_error(exc) from exc
