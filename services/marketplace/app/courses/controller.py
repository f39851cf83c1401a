"""Courses controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import UploadFile
from pydantic import BaseModel, ValidationError
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.pagination import PaginatedResponse
from shared.models.user import CurrentUser

from app import policy
from app.config import Settings
from app.courses import service
from app.courses.schemas import (
    CourseDetailResponse,
    CourseResponse,
    CourseSummary,
    CreateCourseRequest,
    InstitutionBrief,
    SyllabusLinkResponse,
    UpdateCourseRequest,
)
from app.exceptions import ValidationFailed, to_http_error
from app.models.course import Course
from app.models.enums import CourseStatus, PromotionLevel
from app.reviews.controller import review_view
from app.storage.blob import BlobStore, discard, store_syllabus

# Columns stored as JSON; nested models and enums are dumped to plain JSON values.
_JSON_FIELDS = frozenset({
    "subjects", "course_languages", "course_types", "faculty", "syllabus_details",
    "weekly_schedule", "tags", "search_keywords",
})


def _column_values(body: BaseModel, *, exclude_unset: bool = False) -> dict[str, Any]:
    python = body.model_dump(exclude_unset=exclude_unset)
    as_json = body.model_dump(mode="json", exclude_unset=exclude_unset, include=_JSON_FIELDS)
    python.update(as_json)
    return python


def course_view(course: Course) -> CourseResponse:
    return CourseResponse.model_validate(course)


def course_summary(course: Course) -> CourseSummary:
    data = {
        name: getattr(course, name)
        for name in CourseSummary.model_fields
        if name != "institution"
    }
    if "institution" not in inspect(course).unloaded and course.institution is not None:
        data["institution"] = InstitutionBrief.model_validate(course.institution)
    return CourseSummary.model_validate(data)


def parse_create_payload(payload: str) -> CreateCourseRequest:
    """Decode the JSON ``payload`` form field; any defect rejects the whole request."""
    try:
        return CreateCourseRequest.model_validate_json(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ()))
        detail = first.get("msg", "Invalid course payload.")
        raise ValidationFailed(f"{loc}: {detail}" if loc else detail) from exc


async def _read_upload(
    store: BlobStore, upload: UploadFile, settings: Settings
) -> str:
    data = await upload.read()
    return await store_syllabus(
        store,
        data,
        content_type=upload.content_type,
        filename=upload.filename or "syllabus.pdf",
        max_bytes=settings.syllabus_max_bytes,
    )


async def create_course(
    db: AsyncSession,
    user: CurrentUser,
    payload: str,
    syllabus: UploadFile | None,
    store: BlobStore,
    settings: Settings,
) -> CourseResponse:
    syllabus_ref: str | None = None
    try:
        body = parse_create_payload(payload)
        if syllabus is not None and syllabus.filename:
            syllabus_ref = await _read_upload(store, syllabus, settings)
        course = await service.create_course(
            db, user.id, fields=_column_values(body), syllabus_ref=syllabus_ref
        )
        response = course_view(course)
        await db.commit()
        return response
    except Exception as exc:
        await discard(store, syllabus_ref)
        raise to_http_error(exc) from exc


async def list_courses(
    db: AsyncSession, *, page: int, page_size: int, **filters: Any
) -> PaginatedResponse[CourseSummary]:
    try:
        courses, total = await service.list_published(
            db, limit=page_size, offset=(page - 1) * page_size, **filters
        )
        return PaginatedResponse[CourseSummary](
            items=[course_summary(c) for c in courses],
            total=total,
            page=page,
            page_size=page_size,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc


async def trending(db: AsyncSession, limit: int) -> list[CourseSummary]:
    try:
        return [course_summary(c) for c in await service.list_trending(db, limit=limit)]
    except Exception as exc:
        raise to_http_error(exc) from exc


async def recommendations(db: AsyncSession, user: CurrentUser, limit: int) -> list[CourseSummary]:
    try:
        courses = await service.list_recommendations(db, user.id, limit=limit)
        return [course_summary(c) for c in courses]
    except Exception as exc:
        raise to_http_error(exc) from exc


async def get_course_detail(
    db: AsyncSession, course_id: UUID, viewer: CurrentUser | None
) -> CourseDetailResponse:
    try:
        course, reviews = await service.get_course_detail(db, course_id, viewer)
        access = policy.course_access(course, viewer)
        full = access is not policy.Access.PUBLIC
        return CourseDetailResponse(
            course=course_view(course),
            institution=InstitutionBrief.model_validate(course.institution),
            reviews=[review_view(r, full=full) for r in reviews],
            access=access.value,
        )
    except Exception as exc:
        raise to_http_error(exc) from exc


async def record_view(db: AsyncSession, course_id: UUID) -> int:
    try:
        views = await service.record_view(db, course_id)
        await db.commit()
        return views
    except Exception as exc:
        raise to_http_error(exc) from exc


async def syllabus_link(
    db: AsyncSession,
    course_id: UUID,
    viewer: CurrentUser | None,
    store: BlobStore,
    settings: Settings,
) -> SyllabusLinkResponse:
    try:
        ref = await service.get_syllabus_ref(db, course_id, viewer)
        url = await store.url_for(ref)
        return SyllabusLinkResponse(url=url, expires_in=settings.s3_presigned_expiry_seconds)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def update_course(
    db: AsyncSession, course_id: UUID, user: CurrentUser, body: UpdateCourseRequest
) -> CourseResponse:
    try:
        changes = _column_values(body, exclude_unset=True)
        course = await service.update_course(db, course_id, user, changes)
        await db.commit()
        return course_view(course)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def replace_syllabus(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    syllabus: UploadFile,
    store: BlobStore,
    settings: Settings,
) -> CourseResponse:
    new_ref: str | None = None
    try:
        new_ref = await _read_upload(store, syllabus, settings)
        course, previous = await service.replace_syllabus(db, course_id, user, new_ref)
        await db.commit()
    except Exception as exc:
        await discard(store, new_ref)
        raise to_http_error(exc) from exc
    await discard(store, previous)
    return course_view(course)


async def set_publication(
    db: AsyncSession, course_id: UUID, user: CurrentUser, is_published: bool
) -> CourseResponse:
    try:
        course = await service.set_publication(db, course_id, user, is_published)
        await db.commit()
        return course_view(course)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def promote_course(
    db: AsyncSession, course_id: UUID, user: CurrentUser, level: PromotionLevel
) -> CourseResponse:
    try:
        course = await service.promote_course(db, course_id, user, level)
        await db.commit()
        return course_view(course)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def close_course(
    db: AsyncSession, course_id: UUID, user: CurrentUser, target: CourseStatus
) -> CourseResponse:
    try:
        course = await service.close_course(db, course_id, user, target)
        await db.commit()
        return course_view(course)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def delete_course(
    db: AsyncSession, course_id: UUID, user: CurrentUser, store: BlobStore
) -> None:
    try:
        syllabus_ref = await service.delete_course(db, course_id, user)
        await db.commit()
    except Exception as exc:
        raise to_http_error(exc) from exc
    await discard(store, syllabus_ref)
