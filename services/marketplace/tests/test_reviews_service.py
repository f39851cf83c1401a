import pytest
from sqlalchemy import select

from app.enrollments import service as enrollment_service
from app.exceptions import CourseNotFound, DuplicateReview, InvalidState, ValidationFailed
from app.models.course import Course
from app.models.enums import ModerationAction, ReviewStatus, VoteKind
from app.reviews import service
from shared.constants import Role

from factories import make_course, make_user


async def _setup(db_session):
    institution = await make_user(db_session, role=Role.INSTITUTION, is_verified=True)
    admin = await make_user(db_session, role=Role.ADMIN)
    course = await make_course(db_session, institution)
    return institution, admin, course


async def _submit(db_session, course, user, stars=(5, 4, 3)):
    return await service.submit_review(
        db_session,
        course.id,
        user.id,
        course_rating=stars[0],
        institute_rating=stars[1],
        faculty_rating=stars[2],
        review_text="Great faculty, weak test series.",
    )


@pytest.mark.asyncio
async def test_submitted_review_is_pending_and_invisible(db_session) -> None:
    _, _, course = await _setup(db_session)
    aspirant = await make_user(db_session)

    review = await _submit(db_session, course, aspirant)

    assert review.status == ReviewStatus.PENDING
    assert review.is_visible is False
    assert review.is_verified is False
    refreshed = (await db_session.execute(select(Course).where(Course.id == course.id))).scalar_one()
    assert refreshed.total_reviews == 0
    assert refreshed.rating_overall == 0


@pytest.mark.asyncio
async def test_second_review_by_same_user_is_rejected(db_session) -> None:
    _, admin, course = await _setup(db_session)
    aspirant = await make_user(db_session)
    first = await _submit(db_session, course, aspirant)
    await service.moderate_review(
        db_session, course.id, first.id,
        action=ModerationAction.REJECT, moderator_id=admin.id, rejection_reason="spam",
    )

    with pytest.raises(DuplicateReview):
        await _submit(db_session, course, aspirant)


@pytest.mark.asyncio
async def test_review_on_draft_course_is_not_found(db_session) -> None:
    institution, _, _ = await _setup(db_session)
    draft = await make_course(db_session, institution, published=False)
    aspirant = await make_user(db_session)

    with pytest.raises(CourseNotFound):
        await _submit(db_session, draft, aspirant)


@pytest.mark.asyncio
async def test_out_of_range_rating_is_rejected(db_session) -> None:
    _, _, course = await _setup(db_session)
    aspirant = await make_user(db_session)

    with pytest.raises(ValidationFailed):
        await _submit(db_session, course, aspirant, stars=(6, 4, 3))


@pytest.mark.asyncio
async def test_enrolled_reviewer_gets_verified_badge(db_session) -> None:
    _, _, course = await _setup(db_session)
    aspirant = await make_user(db_session)
    await enrollment_service.enroll(db_session, course.id, aspirant.id)

    review = await _submit(db_session, course, aspirant)

    assert review.is_verified is True


@pytest.mark.asyncio
async def test_moderation_recomputes_ratings_from_approved_reviews(db_session) -> None:
    _, admin, course = await _setup(db_session)
    a, b, c = [await make_user(db_session) for _ in range(3)]
    ra = await _submit(db_session, course, a, (5, 5, 5))
    rb = await _submit(db_session, course, b, (3, 1, 2))
    await _submit(db_session, course, c, (1, 1, 1))

    await service.moderate_review(
        db_session, course.id, ra.id, action=ModerationAction.APPROVE, moderator_id=admin.id
    )
    updated, _ = await service.moderate_review(
        db_session, course.id, rb.id, action=ModerationAction.APPROVE, moderator_id=admin.id
    )

    assert updated.total_reviews == 2
    assert updated.rating_course == pytest.approx(4.0)
    assert updated.rating_institute == pytest.approx(3.0)
    assert updated.rating_faculty == pytest.approx(3.5)
    assert updated.rating_overall == pytest.approx((4.0 + 3.0 + 3.5) / 3)

    updated, review = await service.moderate_review(
        db_session, course.id, ra.id,
        action=ModerationAction.REJECT, moderator_id=admin.id, rejection_reason="Paid review",
    )
    assert review.is_visible is False
    assert review.rejection_reason == "Paid review"
    assert updated.total_reviews == 1
    assert updated.rating_overall == pytest.approx(2.0)


@pytest.mark.asyncio
async def test_reject_requires_reason(db_session) -> None:
    _, admin, course = await _setup(db_session)
    review = await _submit(db_session, course, await make_user(db_session))

    with pytest.raises(ValidationFailed):
        await service.moderate_review(
            db_session, course.id, review.id,
            action=ModerationAction.REJECT, moderator_id=admin.id, rejection_reason="  ",
        )


@pytest.mark.asyncio
async def test_invalid_transitions(db_session) -> None:
    _, admin, course = await _setup(db_session)
    review = await _submit(db_session, course, await make_user(db_session))

    with pytest.raises(InvalidState):
        await service.moderate_review(
            db_session, course.id, review.id, action=ModerationAction.ARCHIVE, moderator_id=admin.id
        )

    await service.moderate_review(
        db_session, course.id, review.id, action=ModerationAction.APPROVE, moderator_id=admin.id
    )
    with pytest.raises(InvalidState):
        await service.moderate_review(
            db_session, course.id, review.id, action=ModerationAction.APPROVE, moderator_id=admin.id
        )

    await service.moderate_review(
        db_session, course.id, review.id, action=ModerationAction.ARCHIVE, moderator_id=admin.id
    )
    with pytest.raises(InvalidState):
        await service.moderate_review(
            db_session, course.id, review.id, action=ModerationAction.APPROVE, moderator_id=admin.id
        )


@pytest.mark.asyncio
async def test_vote_flip_and_repeat(db_session) -> None:
    _, admin, course = await _setup(db_session)
    review = await _submit(db_session, course, await make_user(db_session))
    await service.moderate_review(
        db_session, course.id, review.id, action=ModerationAction.APPROVE, moderator_id=admin.id
    )
    voter = await make_user(db_session)

    voted = await service.vote_review(db_session, course.id, review.id, voter.id, VoteKind.HELPFUL)
    assert (voted.helpful_votes, voted.not_helpful_votes) == (1, 0)

    voted = await service.vote_review(db_session, course.id, review.id, voter.id, VoteKind.HELPFUL)
    assert (voted.helpful_votes, voted.not_helpful_votes) == (1, 0)

    voted = await service.vote_review(db_session, course.id, review.id, voter.id, VoteKind.NOT_HELPFUL)
    assert (voted.helpful_votes, voted.not_helpful_votes) == (0, 1)
    assert len(voted.votes) == 1


@pytest.mark.asyncio
async def test_cannot_vote_on_pending_review(db_session) -> None:
    _, _, course = await _setup(db_session)
    review = await _submit(db_session, course, await make_user(db_session))

    with pytest.raises(InvalidState):
        await service.vote_review(
            db_session, course.id, review.id, (await make_user(db_session)).id, VoteKind.HELPFUL
        )
