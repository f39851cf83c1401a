"""Institution dashboard schemas."""

from __future__ import annotations

from pydantic import BaseModel


class InstitutionAnalytics(BaseModel):
    total_courses: int
    published_courses: int
    total_views: int
    total_leads: int
    total_enrollments: int
    conversion_rate: float
    average_rating: float
    top_performing_course: str | None = None
