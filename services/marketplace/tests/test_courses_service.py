from datetime import date, timedelta
from decimal import Decimal

import pytest
import sqlalchemy as sa

from app.courses import service
from app.enrollments import service as enrollment_service
from app.exceptions import (
    AccountInactive,
    CourseNotFound,
    Forbidden,
    InvalidState,
    NotCourseOwner,
    ValidationFailed,
)
from app.models.course import Course
from app.models.enums import CourseCategory, CourseStatus, PromotionLevel
from shared.constants import Role

from factories import actor, make_course, make_user


def _fields(**overrides) -> dict:
    start = date.today() + timedelta(days=45)
    fields = {
        "title": "Prelims Crash Course",
        "description": "Ninety days of prelims practice.",
        "duration": "3 months",
        "course_category": CourseCategory.PRELIMS,
        "course_types": ["online"],
        "course_languages": ["english", "hindi"],
        "price": Decimal("15000.00"),
        "start_date": start,
        "end_date": start + timedelta(days=90),
    }
    fields.update(overrides)
    return fields


async def _reload(session, course_id) -> Course:
    result = await session.execute(
        sa.select(Course).where(Course.id == course_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


# ── Create ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_verified_institution_publishes_immediately(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)

    course = await service.create_course(db_session, institution.id, fields=_fields())

    assert course.status == CourseStatus.PUBLISHED
    assert course.is_published is True
    assert course.original_price == Decimal("15000.00")


@pytest.mark.asyncio
async def test_unverified_institution_creates_draft(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION)

    course = await service.create_course(db_session, institution.id, fields=_fields())

    assert course.status == CourseStatus.DRAFT
    assert course.is_published is False


@pytest.mark.asyncio
async def test_explicit_draft_is_respected(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)

    course = await service.create_course(
        db_session, institution.id, fields=_fields(is_published=False)
    )

    assert course.status == CourseStatus.DRAFT


@pytest.mark.asyncio
async def test_inactive_institution_cannot_create(db_session) -> None:
    institution = await make_user(
        db_session, role=Role.INSTITUTION, is_verified=True, is_active=False
    )

    with pytest.raises(AccountInactive):
        await service.create_course(db_session, institution.id, fields=_fields())


@pytest.mark.asyncio
async def test_offline_course_needs_location(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)

    with pytest.raises(ValidationFailed):
        await service.create_course(
            db_session, institution.id, fields=_fields(course_types=["offline"], city="Delhi")
        )


@pytest.mark.asyncio
async def test_end_date_must_follow_start_date(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    start = date.today() + timedelta(days=10)

    with pytest.raises(ValidationFailed):
        await service.create_course(
            db_session, institution.id, fields=_fields(start_date=start, end_date=start)
        )


@pytest.mark.asyncio
async def test_featured_promotion_sets_flag(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)

    course = await service.create_course(
        db_session, institution.id, fields=_fields(promotion_level=PromotionLevel.FEATURED)
    )
    assert course.is_featured is True

    demoted = await service.promote_course(
        db_session, course.id, actor(institution), PromotionLevel.BASIC
    )
    assert demoted.promotion_level == PromotionLevel.BASIC
    assert demoted.is_featured is False


# ── Owner publication ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_unverified_owner_cannot_publish(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION)
    course = await make_course(db_session, institution, published=False)

    with pytest.raises(Forbidden):
        await service.set_publication(db_session, course.id, actor(institution), True)


@pytest.mark.asyncio
async def test_owner_unpublishes_to_draft_and_back(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, institution)

    hidden = await service.set_publication(db_session, course.id, actor(institution), False)
    assert hidden.status == CourseStatus.DRAFT

    live = await service.set_publication(db_session, course.id, actor(institution), True)
    assert live.status == CourseStatus.PUBLISHED
    assert live.is_published is True


@pytest.mark.asyncio
async def test_owner_cannot_lift_suspension(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, institution, published=False)
    course.status = CourseStatus.SUSPENDED
    await db_session.flush()

    with pytest.raises(InvalidState):
        await service.set_publication(db_session, course.id, actor(institution), True)


@pytest.mark.asyncio
async def test_other_institution_cannot_publish(db_session) -> None:
    owner = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    rival = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, owner, published=False)

    with pytest.raises(NotCourseOwner):
        await service.set_publication(db_session, course.id, actor(rival), True)


# ── Update, close, delete ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, institution)

    with pytest.raises(ValidationFailed):
        await service.update_course(
            db_session, course.id, actor(institution), {"rating_overall": 5.0}
        )


@pytest.mark.asyncio
async def test_update_cannot_drop_capacity_below_enrollments(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, institution, max_students=5)
    for _ in range(2):
        await enrollment_service.enroll(db_session, course.id, (await make_user(db_session)).id)

    with pytest.raises(ValidationFailed):
        await service.update_course(db_session, course.id, actor(institution), {"max_students": 1})

    updated = await service.update_course(
        db_session, course.id, actor(institution), {"max_students": 2, "title": "Batch B"}
    )
    assert updated.title == "Batch B"


@pytest.mark.asyncio
async def test_admin_may_update_any_course(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    admin = await make_user(db_session, role=Role.ADMIN)
    course = await make_course(db_session, institution)

    updated = await service.update_course(db_session, course.id, actor(admin), {"city": "Pune"})

    assert updated.city == "Pune"


@pytest.mark.asyncio
async def test_closed_course_is_terminal(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, institution)

    archived = await service.close_course(
        db_session, course.id, actor(institution), CourseStatus.ARCHIVED
    )
    assert archived.status == CourseStatus.ARCHIVED
    assert archived.is_published is False

    with pytest.raises(InvalidState):
        await service.close_course(db_session, course.id, actor(institution), CourseStatus.CANCELLED)
    with pytest.raises(InvalidState):
        await service.update_course(db_session, course.id, actor(institution), {"title": "Again"})
    with pytest.raises(ValidationFailed):
        await service.close_course(db_session, course.id, actor(institution), CourseStatus.DRAFT)


@pytest.mark.asyncio
async def test_delete_only_drafts(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    live = await make_course(db_session, institution, title="Live")
    draft = await make_course(
        db_session, institution, title="Draft", published=False, syllabus_file="syllabi/1_plan.pdf"
    )

    with pytest.raises(InvalidState):
        await service.delete_course(db_session, live.id, actor(institution))

    ref = await service.delete_course(db_session, draft.id, actor(institution))

    assert ref == "syllabi/1_plan.pdf"
    with pytest.raises(CourseNotFound):
        await service.get_course(db_session, draft.id)


# ── Catalogue ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_catalogue_hides_non_live_courses(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    await make_course(db_session, institution, title="Visible")
    await make_course(db_session, institution, title="Draft", published=False)

    courses, total = await service.list_published(db_session, limit=20, offset=0)

    assert total == 1
    assert [c.title for c in courses] == ["Visible"]


@pytest.mark.asyncio
async def test_catalogue_filters(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    await make_course(
        db_session, institution, title="Delhi Mains", price="40000.00",
        category=CourseCategory.MAINS, course_types=["offline"],
        city="New Delhi", state="Delhi", address="Mukherjee Nagar",
        course_languages=["hindi"],
    )
    await make_course(db_session, institution, title="Online Prelims", price="9000.00",
                      category=CourseCategory.PRELIMS, tags=["csat"])

    async def titles(**filters) -> list[str]:
        courses, _ = await service.list_published(db_session, limit=20, offset=0, **filters)
        return sorted(c.title for c in courses)

    assert await titles(city="delhi") == ["Delhi Mains"]
    assert await titles(course_type="online") == ["Online Prelims"]
    assert await titles(language="hindi") == ["Delhi Mains"]
    assert await titles(category="mains") == ["Delhi Mains"]
    assert await titles(max_price=Decimal("10000")) == ["Online Prelims"]
    assert await titles(search="csat") == ["Online Prelims"]
    assert await titles(search="mains") == ["Delhi Mains"]


@pytest.mark.asyncio
async def test_relevance_puts_featured_then_promoted_first(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    await make_course(db_session, institution, title="Top rated", rating_overall=4.9)
    await make_course(
        db_session, institution, title="Premium",
        promotion_level=PromotionLevel.PREMIUM, rating_overall=3.0,
    )
    await make_course(
        db_session, institution, title="Featured",
        promotion_level=PromotionLevel.FEATURED, is_featured=True, rating_overall=2.0,
    )

    courses, _ = await service.list_published(db_session, limit=20, offset=0)
    by_rating, _ = await service.list_published(db_session, sort="rating", limit=20, offset=0)

    assert [c.title for c in courses] == ["Featured", "Premium", "Top rated"]
    assert by_rating[0].title == "Top rated"


@pytest.mark.asyncio
async def test_record_view_counts_live_courses_only(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    live = await make_course(db_session, institution)
    draft = await make_course(db_session, institution, published=False)

    assert await service.record_view(db_session, live.id) == 1
    assert await service.record_view(db_session, live.id) == 2
    assert (await _reload(db_session, live.id)).views == 2
    with pytest.raises(CourseNotFound):
        await service.record_view(db_session, draft.id)


@pytest.mark.asyncio
async def test_recommendations_follow_enrolled_category(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    taken = await make_course(db_session, institution, title="Mains A", category=CourseCategory.MAINS,
                              course_languages=["tamil"])
    await make_course(db_session, institution, title="Mains B", category=CourseCategory.MAINS,
                      course_languages=["tamil"])
    await make_course(db_session, institution, title="Interview", category=CourseCategory.INTERVIEW,
                      course_languages=["urdu"])
    aspirant = await make_user(db_session)
    await enrollment_service.enroll(db_session, taken.id, aspirant.id)

    courses = await service.list_recommendations(db_session, aspirant.id)

    assert [c.title for c in courses] == ["Mains B"]


@pytest.mark.asyncio
async def test_draft_hidden_from_public_but_not_owner(db_session) -> None:
    institution = await make_user(db_session, role=Role.INSTITUTION)
    course = await make_course(db_session, institution, published=False)

    with pytest.raises(CourseNotFound):
        await service.get_visible_course(db_session, course.id, None)
    seen = await service.get_visible_course(db_session, course.id, actor(institution))
    assert seen.id == course.id
