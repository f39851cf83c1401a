import pytest

from app.models.course import Course
from app.models.enums import ReviewStatus
from app.models.review import Review
from app.reviews import ratings


def _review(course: int, institute: int, faculty: int, status=ReviewStatus.APPROVED) -> Review:
    return Review(
        course_rating=course,
        institute_rating=institute,
        faculty_rating=faculty,
        review_text="ok",
        status=status,
    )


def test_summary_is_zero_without_approved_reviews() -> None:
    summary = ratings.summarize([_review(5, 5, 5, ReviewStatus.PENDING)])
    assert summary == ratings.RatingSummary()
    assert summary.total_reviews == 0


def test_overall_is_mean_of_dimension_means() -> None:
    reviews = [_review(5, 3, 4), _review(3, 3, 2), _review(4, 5, 5, ReviewStatus.REJECTED)]
    summary = ratings.summarize(reviews)
    assert summary.course == pytest.approx(4.0)
    assert summary.institute == pytest.approx(3.0)
    assert summary.faculty == pytest.approx(3.0)
    assert summary.overall == pytest.approx((4.0 + 3.0 + 3.0) / 3)
    assert summary.total_reviews == 2


def test_archived_and_pending_reviews_do_not_count() -> None:
    reviews = [
        _review(1, 1, 1, ReviewStatus.ARCHIVED),
        _review(2, 2, 2, ReviewStatus.PENDING),
        _review(5, 4, 3),
    ]
    summary = ratings.summarize(reviews)
    assert summary.total_reviews == 1
    assert summary.overall == pytest.approx(4.0)


def test_apply_summary_writes_course_fields() -> None:
    course = Course()
    ratings.apply_summary(course, ratings.RatingSummary(4.0, 3.0, 2.0, 3.0, 7))
    assert course.average_rating == {"course": 4.0, "institute": 3.0, "faculty": 2.0, "overall": 3.0}
    assert course.total_reviews == 7
