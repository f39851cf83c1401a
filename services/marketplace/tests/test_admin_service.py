import pytest
import sqlalchemy as sa

from app.admin import service
from app.exceptions import InvalidState, ValidationFailed
from app.models.course import Course
from app.models.enums import CourseStatus
from shared.constants import Role

from factories import make_course, make_user


async def _reload_courses(session, institution_id) -> dict[str, Course]:
    result = await session.execute(
        sa.select(Course)
        .where(Course.institution_id == institution_id)
        .execution_options(populate_existing=True)
    )
    return {c.title: c for c in result.scalars().all()}


@pytest.mark.asyncio
async def test_delisting_suspends_every_open_course(db_session) -> None:
    admin = await make_user(db_session, role=Role.ADMIN)
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    for title in ("Prelims", "Mains", "Optional"):
        await make_course(db_session, institution, title=title)
    archived = await make_course(db_session, institution, title="Old batch", published=False)
    archived.status = CourseStatus.ARCHIVED
    await db_session.flush()

    inst, suspended = await service.set_institution_status(
        db_session, institution.id, False, admin.id, reason="Fraudulent listings"
    )

    assert inst.is_active is False
    assert suspended == 3
    courses = await _reload_courses(db_session, institution.id)
    for title in ("Prelims", "Mains", "Optional"):
        course = courses[title]
        assert course.status == CourseStatus.SUSPENDED
        assert course.is_published is False
        assert course.admin_action["action"] == "unpublished"
        assert course.admin_action["reason"] == "Institution delisted: Fraudulent listings"
        assert course.version == 2
    assert courses["Old batch"].status == CourseStatus.ARCHIVED


@pytest.mark.asyncio
async def test_reactivation_does_not_republish(db_session) -> None:
    admin = await make_user(db_session, role=Role.ADMIN)
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    await make_course(db_session, institution, title="Prelims")
    await service.set_institution_status(db_session, institution.id, False, admin.id, reason="Spam")

    inst, suspended = await service.set_institution_status(db_session, institution.id, True, admin.id)

    assert inst.is_active is True
    assert suspended == 0
    course = (await _reload_courses(db_session, institution.id))["Prelims"]
    assert course.status == CourseStatus.SUSPENDED
    assert course.is_published is False


@pytest.mark.asyncio
async def test_delisting_requires_reason(db_session) -> None:
    admin = await make_user(db_session, role=Role.ADMIN)
    institution = await make_user(db_session, role=Role.INSTITUTION)

    with pytest.raises(ValidationFailed):
        await service.set_institution_status(db_session, institution.id, False, admin.id, reason="  ")


@pytest.mark.asyncio
async def test_verify_and_unverify(db_session) -> None:
    admin = await make_user(db_session, role=Role.ADMIN)
    institution = await make_user(db_session, role=Role.INSTITUTION)

    verified = await service.verify_institution(db_session, institution.id, True, admin.id)
    assert verified.is_verified is True
    assert verified.verified_by == admin.id
    assert verified.verified_at is not None

    cleared = await service.verify_institution(db_session, institution.id, False, admin.id)
    assert cleared.is_verified is False
    assert cleared.verified_at is None


@pytest.mark.asyncio
async def test_user_status_rules(db_session) -> None:
    admin = await make_user(db_session, role=Role.ADMIN)
    institution = await make_user(db_session, role=Role.INSTITUTION)
    aspirant = await make_user(db_session)

    with pytest.raises(InvalidState):
        await service.set_user_status(db_session, institution.id, False, admin.id)
    with pytest.raises(InvalidState):
        await service.set_user_status(db_session, admin.id, False, admin.id)

    updated = await service.set_user_status(db_session, aspirant.id, False, admin.id)
    assert updated.is_active is False


@pytest.mark.asyncio
async def test_course_suspension_and_republish(db_session) -> None:
    admin = await make_user(db_session, role=Role.ADMIN)
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, institution)

    with pytest.raises(ValidationFailed):
        await service.set_course_publication(db_session, course.id, False, admin.id)

    suspended = await service.set_course_publication(
        db_session, course.id, False, admin.id, reason="Misleading claims"
    )
    assert suspended.status == CourseStatus.SUSPENDED
    assert suspended.admin_action["reason"] == "Misleading claims"
    assert suspended.admin_action["action_by"] == str(admin.id)

    republished = await service.set_course_publication(db_session, course.id, True, admin.id)
    assert republished.status == CourseStatus.PUBLISHED
    assert republished.is_published is True


@pytest.mark.asyncio
async def test_cannot_publish_course_of_delisted_institution(db_session) -> None:
    admin = await make_user(db_session, role=Role.ADMIN)
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, institution)
    await service.set_institution_status(db_session, institution.id, False, admin.id, reason="Spam")

    with pytest.raises(InvalidState):
        await service.set_course_publication(db_session, course.id, True, admin.id)


@pytest.mark.asyncio
async def test_closed_course_cannot_be_toggled(db_session) -> None:
    admin = await make_user(db_session, role=Role.ADMIN)
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    course = await make_course(db_session, institution, published=False)
    course.status = CourseStatus.CANCELLED
    await db_session.flush()

    with pytest.raises(InvalidState):
        await service.set_course_publication(db_session, course.id, True, admin.id)


@pytest.mark.asyncio
async def test_stats_counts(db_session) -> None:
    await make_user(db_session, role=Role.ADMIN)
    verified = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    await make_user(db_session, role=Role.INSTITUTION)
    await make_user(db_session)
    await make_course(db_session, verified)
    await make_course(db_session, verified, published=False)

    counts = await service.stats(db_session)

    assert counts["aspirant_count"] == 1
    assert counts["institution_count"] == 2
    assert counts["verified_institutions"] == 1
    assert counts["pending_institutions"] == 1
    assert counts["course_count"] == 2
    assert counts["published_courses"] == 1
