"""Courses router — HTTP layer only.

Public catalogue reads plus the owning institution's course management.
Course creation is multipart: a JSON ``payload`` field and an optional
``syllabus_file`` PDF.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.dependencies import (
    get_current_user_optional,
    get_current_user_required,
    require_role,
)
from shared.constants import Role
from shared.models.envelope import Envelope
from shared.models.pagination import PaginatedResponse
from shared.models.user import CurrentUser

from app.config import Settings, get_settings
from app.courses import controller
from app.courses.schemas import (
    CloseCourseRequest,
    CourseDetailResponse,
    CourseResponse,
    CourseSort,
    CourseSummary,
    PromoteCourseRequest,
    PublishCourseRequest,
    SyllabusLinkResponse,
    UpdateCourseRequest,
)
from app.database import get_db
from app.dependencies import get_blob_store
from app.models.enums import CourseCategory, CourseLanguage, CourseType
from app.storage.blob import BlobStore

router = APIRouter(prefix="/courses", tags=["Courses"])


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=Envelope[PaginatedResponse[CourseSummary]],
    summary="Browse the course catalogue",
    description="Published courses only. Default ordering puts featured and promoted "
    "courses first, then the best rated, then the newest.",
)
async def list_courses(
    search: str | None = Query(None, max_length=100),
    category: CourseCategory | None = Query(None),
    course_type: CourseType | None = Query(None),
    city: str | None = Query(None, max_length=100),
    state: str | None = Query(None, max_length=100),
    language: CourseLanguage | None = Query(None),
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    start_date_from: date | None = Query(None),
    min_rating: float | None = Query(None, ge=0, le=5),
    featured: bool | None = Query(None),
    promoted: bool | None = Query(None),
    sort: CourseSort = Query(CourseSort.RELEVANCE),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> Envelope[PaginatedResponse[CourseSummary]]:
    data = await controller.list_courses(
        db,
        page=page,
        page_size=page_size,
        search=search,
        category=category.value if category else None,
        course_type=course_type.value if course_type else None,
        city=city,
        state=state,
        language=language.value if language else None,
        min_price=min_price,
        max_price=max_price,
        start_date_from=start_date_from,
        min_rating=min_rating,
        featured=featured,
        promoted=promoted,
        sort=sort.value,
    )
    return Envelope(data=data)


@router.get(
    "/trending",
    response_model=Envelope[list[CourseSummary]],
    summary="Trending courses",
    description="Courses published in the last 30 days, by views, shortlists and enrollments.",
)
async def trending(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> Envelope[list[CourseSummary]]:
    return Envelope(data=await controller.trending(db, limit))


@router.get(
    "/recommendations",
    response_model=Envelope[list[CourseSummary]],
    summary="Recommended courses",
    description="Courses similar to what the caller shortlisted or enrolled in.",
)
async def recommendations(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user_required),
) -> Envelope[list[CourseSummary]]:
    return Envelope(data=await controller.recommendations(db, user, limit))


@router.get(
    "/{course_id}",
    response_model=Envelope[CourseDetailResponse],
    summary="Course detail",
    description="Drafts and suspended courses are visible to their owner and admins only; "
    "anyone else gets 404.",
)
async def get_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    viewer: CurrentUser | None = Depends(get_current_user_optional),
) -> Envelope[CourseDetailResponse]:
    return Envelope(data=await controller.get_course_detail(db, course_id, viewer))


@router.post(
    "/{course_id}/view",
    response_model=Envelope[dict[str, int]],
    summary="Record a course view",
)
async def record_view(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Envelope[dict[str, int]]:
    return Envelope(data={"views": await controller.record_view(db, course_id)})


@router.get(
    "/{course_id}/syllabus",
    response_model=Envelope[SyllabusLinkResponse],
    summary="Syllabus download link",
    description="Short-lived presigned URL for the course's syllabus PDF.",
)
async def syllabus_link(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    viewer: CurrentUser | None = Depends(get_current_user_optional),
    store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> Envelope[SyllabusLinkResponse]:
    return Envelope(data=await controller.syllabus_link(db, course_id, viewer, store, settings))


# ---------------------------------------------------------------------------
# Institution course management
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=Envelope[CourseResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a course",
    description="Multipart: ``payload`` carries the course as JSON, ``syllabus_file`` an "
    "optional PDF (5 MB max). Verified institutions publish immediately unless "
    "``is_published`` is false.",
)
async def create_course(
    payload: str = Form(...),
    syllabus_file: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.INSTITUTION)),
    store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> Envelope[CourseResponse]:
    course = await controller.create_course(db, user, payload, syllabus_file, store, settings)
    message = "Course published." if course.is_published else "Course saved as draft."
    return Envelope(data=course, message=message)


@router.patch(
    "/{course_id}",
    response_model=Envelope[CourseResponse],
    summary="Update course details",
)
async def update_course(
    course_id: UUID,
    body: UpdateCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.INSTITUTION, Role.ADMIN)),
) -> Envelope[CourseResponse]:
    return Envelope(data=await controller.update_course(db, course_id, user, body))


@router.put(
    "/{course_id}/syllabus",
    response_model=Envelope[CourseResponse],
    summary="Replace the syllabus PDF",
)
async def replace_syllabus(
    course_id: UUID,
    syllabus_file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.INSTITUTION, Role.ADMIN)),
    store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> Envelope[CourseResponse]:
    course = await controller.replace_syllabus(db, course_id, user, syllabus_file, store, settings)
    return Envelope(data=course, message="Syllabus updated.")


@router.patch(
    "/{course_id}/publish",
    response_model=Envelope[CourseResponse],
    summary="Publish or unpublish a course",
    description="Owner only. Publishing requires a verified, active institution. "
    "Suspended, archived and cancelled courses cannot be toggled.",
)
async def set_publication(
    course_id: UUID,
    body: PublishCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.INSTITUTION)),
) -> Envelope[CourseResponse]:
    course = await controller.set_publication(db, course_id, user, body.is_published)
    return Envelope(data=course, message=f"Course {course.status.value}.")


@router.patch(
    "/{course_id}/promote",
    response_model=Envelope[CourseResponse],
    summary="Change a course's promotion level",
)
async def promote_course(
    course_id: UUID,
    body: PromoteCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.INSTITUTION)),
) -> Envelope[CourseResponse]:
    return Envelope(data=await controller.promote_course(db, course_id, user, body.promotion_level))


@router.patch(
    "/{course_id}/status",
    response_model=Envelope[CourseResponse],
    summary="Archive or cancel a course",
    description="Terminal: an archived or cancelled course never returns to the catalogue.",
)
async def close_course(
    course_id: UUID,
    body: CloseCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.INSTITUTION, Role.ADMIN)),
) -> Envelope[CourseResponse]:
    course = await controller.close_course(db, course_id, user, body.status)
    return Envelope(data=course, message=f"Course {course.status.value}.")


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a draft course",
    description="Only drafts nobody has enrolled in can be deleted.",
)
async def delete_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.INSTITUTION)),
    store: BlobStore = Depends(get_blob_store),
) -> Response:
    await controller.delete_course(db, course_id, user, store)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
