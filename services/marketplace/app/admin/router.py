"""Admin router — HTTP layer only. Every route requires the admin role."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.dependencies import require_role
from shared.constants import Role
from shared.models.envelope import Envelope
from shared.models.pagination import PaginatedResponse
from shared.models.user import CurrentUser

from app.admin import controller
from app.admin.schemas import (
    AdminStats,
    AdminUserResponse,
    CoursePublicationRequest,
    InstitutionOverview,
    InstitutionStatusRequest,
    InstitutionStatusResult,
    UserStatusRequest,
    VerifyInstitutionRequest,
)
from app.config import Settings, get_settings
from app.courses.schemas import CourseResponse
from app.database import get_db
from app.models.enums import CourseStatus

router = APIRouter(prefix="/admin", tags=["Admin"])

_admin = require_role(Role.ADMIN)


@router.get("/stats", response_model=Envelope[AdminStats], summary="Platform counters")
async def stats(
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(_admin),
) -> Envelope[AdminStats]:
    return Envelope(data=await controller.stats(db))


@router.get(
    "/users",
    response_model=Envelope[PaginatedResponse[AdminUserResponse]],
    summary="List users",
)
async def list_users(
    role: Role | None = Query(None),
    is_verified: bool | None = Query(None),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(_admin),
) -> Envelope[PaginatedResponse[AdminUserResponse]]:
    data = await controller.list_users(
        db, role=role, is_verified=is_verified, is_active=is_active, page=page, page_size=page_size
    )
    return Envelope(data=data)


@router.get(
    "/institutions",
    response_model=Envelope[PaginatedResponse[InstitutionOverview]],
    summary="List institutions with course counts",
)
async def list_institutions(
    is_verified: bool | None = Query(None),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(_admin),
) -> Envelope[PaginatedResponse[InstitutionOverview]]:
    data = await controller.list_institutions(
        db, is_verified=is_verified, is_active=is_active, page=page, page_size=page_size
    )
    return Envelope(data=data)


@router.patch(
    "/institutions/{institution_id}/verify",
    response_model=Envelope[AdminUserResponse],
    summary="Verify or unverify an institution",
    description="Verified institutions can publish courses. The institution is e-mailed.",
)
async def verify_institution(
    institution_id: UUID,
    body: VerifyInstitutionRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(_admin),
    settings: Settings = Depends(get_settings),
) -> Envelope[AdminUserResponse]:
    data = await controller.verify_institution(
        db, institution_id, body.is_verified, admin, settings, background_tasks
    )
    return Envelope(data=data, message="Institution verified." if body.is_verified else "Verification withdrawn.")


@router.patch(
    "/institutions/{institution_id}/status",
    response_model=Envelope[InstitutionStatusResult],
    summary="Delist or reactivate an institution",
    description="Delisting (reason required) suspends every open course the institution owns. "
    "Reactivation does not republish them.",
)
async def set_institution_status(
    institution_id: UUID,
    body: InstitutionStatusRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(_admin),
    settings: Settings = Depends(get_settings),
) -> Envelope[InstitutionStatusResult]:
    data = await controller.set_institution_status(
        db, institution_id, body, admin, settings, background_tasks
    )
    return Envelope(data=data, message="Institution activated." if body.is_active else "Institution delisted.")


@router.patch(
    "/users/{user_id}/status",
    response_model=Envelope[AdminUserResponse],
    summary="Activate or deactivate a user",
    description="Aspirants and admins only; institutions go through the delist endpoint.",
)
async def set_user_status(
    user_id: UUID,
    body: UserStatusRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(_admin),
) -> Envelope[AdminUserResponse]:
    return Envelope(data=await controller.set_user_status(db, user_id, body.is_active, admin))


@router.get(
    "/courses",
    response_model=Envelope[PaginatedResponse[CourseResponse]],
    summary="List all courses",
)
async def list_courses(
    is_published: bool | None = Query(None),
    status: CourseStatus | None = Query(None),
    institution_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(_admin),
) -> Envelope[PaginatedResponse[CourseResponse]]:
    data = await controller.list_courses(
        db,
        is_published=is_published,
        status=status,
        institution_id=institution_id,
        page=page,
        page_size=page_size,
    )
    return Envelope(data=data)


@router.patch(
    "/courses/{course_id}/publish",
    response_model=Envelope[CourseResponse],
    summary="Suspend or reinstate a course",
    description="Suspending requires a reason; both directions stamp ``admin_action``.",
)
async def set_course_publication(
    course_id: UUID,
    body: CoursePublicationRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(_admin),
) -> Envelope[CourseResponse]:
    course = await controller.set_course_publication(db, course_id, body, admin)
    return Envelope(data=course, message=f"Course {course.status.value}.")
