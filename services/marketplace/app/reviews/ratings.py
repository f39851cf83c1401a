"""
Rating aggregation.

Pure function of a course's review list. Only approved reviews count; the
overall score is the mean of the three per-dimension means, not a pooled
mean over every individual number.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from app.models.course import Course
from app.models.enums import ReviewStatus
from app.models.review import Review


@dataclass(frozen=True)
class RatingSummary:
    course: float = 0.0
    institute: float = 0.0
    faculty: float = 0.0
    overall: float = 0.0
    total_reviews: int = 0


def summarize(reviews: Iterable[Review]) -> RatingSummary:
    approved = [r for r in reviews if r.status == ReviewStatus.APPROVED]
    if not approved:
        return RatingSummary()
    n = len(approved)
    course = sum(r.course_rating for r in approved) / n
    institute = sum(r.institute_rating for r in approved) / n
    faculty = sum(r.faculty_rating for r in approved) / n
    return RatingSummary(
        course=course,
        institute=institute,
        faculty=faculty,
        overall=(course + institute + faculty) / 3,
        total_reviews=n,
    )


def apply_summary(course: Course, summary: RatingSummary) -> None:
    course.rating_course = summary.course
    course.rating_institute = summary.institute
    course.rating_faculty = summary.faculty
    course.rating_overall = summary.overall
    course.total_reviews = summary.total_reviews


def recompute(course: Course) -> RatingSummary:
    """Recompute and store ``course``'s rating fields. ``course.reviews`` must be loaded."""
    summary = summarize(course.reviews)
    apply_summary(course, summary)
    return summary
