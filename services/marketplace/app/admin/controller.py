"""Admin controller — composes responses and schedules notification e-mails."""

from __future__ import annotations

from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from shared.constants import Role
from shared.models.pagination import PaginatedResponse
from shared.models.user import CurrentUser

from app.admin import service
from app.admin.schemas import (
    AdminStats,
    AdminUserResponse,
    CoursePublicationRequest,
    InstitutionOverview,
    InstitutionStatusRequest,
    InstitutionStatusResult,
)
from app.config import Settings
from app.courses.controller import course_view
from app.courses.schemas import CourseResponse
from app.email import send
from app.exceptions import to_http_error
from app.models.enums import CourseStatus


async def stats(db: AsyncSession) -> AdminStats:
    try:
        return AdminStats(**await service.stats(db))
    except Exception as exc:
        raise to_http_error(exc) from exc


async def list_users(
    db: AsyncSession,
    *,
    role: Role | None,
    is_verified: bool | None,
    is_active: bool | None,
    page: int,
    page_size: int,
) -> PaginatedResponse[AdminUserResponse]:
    try:
        users, total = await service.list_users(
            db,
            role=role,
            is_verified=is_verified,
            is_active=is_active,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc
    return PaginatedResponse[AdminUserResponse](
        items=[AdminUserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


async def list_institutions(
    db: AsyncSession,
    *,
    is_verified: bool | None,
    is_active: bool | None,
    page: int,
    page_size: int,
) -> PaginatedResponse[InstitutionOverview]:
    try:
        rows, total = await service.list_institutions(
            db,
            is_verified=is_verified,
            is_active=is_active,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc
    items = [
        InstitutionOverview(
            **AdminUserResponse.model_validate(user).model_dump(),
            course_count=count,
            published_course_count=published,
        )
        for user, count, published in rows
    ]
    return PaginatedResponse[InstitutionOverview](
        items=items, total=total, page=page, page_size=page_size
    )


async def list_courses(
    db: AsyncSession,
    *,
    is_published: bool | None,
    status: CourseStatus | None,
    institution_id: UUID | None,
    page: int,
    page_size: int,
) -> PaginatedResponse[CourseResponse]:
    try:
        courses, total = await service.list_courses(
            db,
            is_published=is_published,
            status=status,
            institution_id=institution_id,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc
    return PaginatedResponse[CourseResponse](
        items=[course_view(c) for c in courses],
        total=total,
        page=page,
        page_size=page_size,
    )


async def verify_institution(
    db: AsyncSession,
    institution_id: UUID,
    is_verified: bool,
    admin: CurrentUser,
    settings: Settings,
    background_tasks: BackgroundTasks,
) -> AdminUserResponse:
    try:
        institution = await service.verify_institution(db, institution_id, is_verified, admin.id)
        await db.commit()
    except Exception as exc:
        raise to_http_error(exc) from exc
    notify = send.send_institution_verified if is_verified else send.send_institution_unverified
    background_tasks.add_task(
        notify, institution.email, institution.name, institution.institution_name or "", settings
    )
    return AdminUserResponse.model_validate(institution)


async def set_institution_status(
    db: AsyncSession,
    institution_id: UUID,
    body: InstitutionStatusRequest,
    admin: CurrentUser,
    settings: Settings,
    background_tasks: BackgroundTasks,
) -> InstitutionStatusResult:
    try:
        institution, suspended = await service.set_institution_status(
            db, institution_id, body.is_active, admin.id, body.reason
        )
        await db.commit()
    except Exception as exc:
        raise to_http_error(exc) from exc
    if not body.is_active:
        background_tasks.add_task(
            send.send_institution_delisted,
            institution.email,
            institution.name,
            institution.institution_name or "",
            body.reason or "",
            settings,
        )
    return InstitutionStatusResult(
        institution=AdminUserResponse.model_validate(institution),
        suspended_courses=suspended,
    )


async def set_user_status(
    db: AsyncSession, user_id: UUID, is_active: bool, admin: CurrentUser
) -> AdminUserResponse:
    try:
        user = await service.set_user_status(db, user_id, is_active, admin.id)
        await db.commit()
        return AdminUserResponse.model_validate(user)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def set_course_publication(
    db: AsyncSession, course_id: UUID, body: CoursePublicationRequest, admin: CurrentUser
) -> CourseResponse:
    try:
        course = await service.set_course_publication(
            db, course_id, body.is_published, admin.id, body.reason
        )
        await db.commit()
        return course_view(course)
    except Exception as exc:
        raise to_http_error(exc) from exc
