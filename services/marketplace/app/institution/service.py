"""
Institution dashboard — read models over the institution's own courses.

Leads are shortlist saves; conversion is completed enrollments per view.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.course import Course
from app.models.enums import CourseStatus


@dataclass(frozen=True)
class Analytics:
    total_courses: int
    published_courses: int
    total_views: int
    total_leads: int
    total_enrollments: int
    conversion_rate: float
    average_rating: float
    top_performing_course: str | None


async def list_own_courses(
    session: AsyncSession,
    institution_id: uuid.UUID,
    *,
    status: CourseStatus | None = None,
) -> list[Course]:
    q = (
        sa.select(Course)
        .where(Course.institution_id == institution_id)
        .order_by(Course.created_at.desc())
    )
    if status is not None:
        q = q.where(Course.status == status)
    result = await session.execute(q)
    return list(result.scalars().all())


def summarize(courses: list[Course]) -> Analytics:
    total_views = sum(c.views for c in courses)
    total_leads = sum(c.shortlisted for c in courses)
    total_enrollments = sum(c.current_enrollments for c in courses)
    conversion = round(total_enrollments / total_views * 100, 1) if total_views else 0.0

    rated = [c.rating_overall for c in courses if c.rating_overall > 0]
    average = round(sum(rated) / len(rated), 1) if rated else 0.0

    top = max(courses, key=lambda c: c.current_enrollments, default=None)
    return Analytics(
        total_courses=len(courses),
        published_courses=sum(1 for c in courses if c.is_live),
        total_views=total_views,
        total_leads=total_leads,
        total_enrollments=total_enrollments,
        conversion_rate=conversion,
        average_rating=average,
        top_performing_course=top.title if top is not None else None,
    )


async def analytics(session: AsyncSession, institution_id: uuid.UUID) -> Analytics:
    return summarize(await list_own_courses(session, institution_id))
