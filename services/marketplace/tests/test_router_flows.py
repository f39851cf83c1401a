"""End-to-end flows across the reviews, enrollments, shortlist and admin routers."""

import pytest
from httpx import AsyncClient

from shared.constants import Role

from factories import auth_headers, make_course, make_user

API = "/api/v1"


async def _seed(session_factory, **course_fields):
    async with session_factory() as session:
        institution = await make_user(session, role=Role.INSTITUTION, is_verified=True)
        admin = await make_user(session, role=Role.ADMIN)
        aspirant = await make_user(session, name="Meera")
        course = await make_course(session, institution, **course_fields)
        await session.commit()
    return institution, admin, aspirant, course


@pytest.mark.asyncio
async def test_review_moderation_round_trip(async_client: AsyncClient, session_factory) -> None:
    institution, admin, aspirant, course = await _seed(session_factory)

    submitted = await async_client.post(
        f"{API}/courses/{course.id}/reviews",
        json={"course_rating": 5, "institute_rating": 4, "faculty_rating": 3,
              "review_text": "Mentors reply within a day."},
        headers=auth_headers(aspirant),
    )
    assert submitted.status_code == 201
    review_id = submitted.json()["data"]["id"]
    assert submitted.json()["data"]["status"] == "pending"

    public = await async_client.get(f"{API}/courses/{course.id}/reviews")
    assert public.json()["data"] == []
    owner = await async_client.get(
        f"{API}/courses/{course.id}/reviews", headers=auth_headers(institution)
    )
    assert len(owner.json()["data"]) == 1

    duplicate = await async_client.post(
        f"{API}/courses/{course.id}/reviews",
        json={"course_rating": 1, "institute_rating": 1, "faculty_rating": 1,
              "review_text": "Changed my mind."},
        headers=auth_headers(aspirant),
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["kind"] == "DuplicateReview"

    queue = await async_client.get(f"{API}/admin/reviews/pending", headers=auth_headers(admin))
    assert queue.json()["data"]["total"] == 1

    approved = await async_client.patch(
        f"{API}/courses/{course.id}/reviews/{review_id}/moderate",
        json={"action": "approve"},
        headers=auth_headers(admin),
    )
    assert approved.status_code == 200
    result = approved.json()["data"]
    assert result["total_reviews"] == 1
    assert result["average_rating"]["overall"] == 4.0

    detail = await async_client.get(f"{API}/courses/{course.id}")
    assert detail.json()["data"]["course"]["total_reviews"] == 1
    assert len(detail.json()["data"]["reviews"]) == 1

    voted = await async_client.post(
        f"{API}/courses/{course.id}/reviews/{review_id}/vote",
        json={"vote": "helpful"},
        headers=auth_headers(institution),
    )
    assert voted.json()["data"]["helpful_votes"] == 1


@pytest.mark.asyncio
async def test_reject_requires_reason(async_client: AsyncClient, session_factory) -> None:
    _, admin, aspirant, course = await _seed(session_factory)
    submitted = await async_client.post(
        f"{API}/courses/{course.id}/reviews",
        json={"course_rating": 2, "institute_rating": 2, "faculty_rating": 2,
              "review_text": "Too crowded."},
        headers=auth_headers(aspirant),
    )
    review_id = submitted.json()["data"]["id"]

    response = await async_client.patch(
        f"{API}/courses/{course.id}/reviews/{review_id}/moderate",
        json={"action": "reject"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_rating_out_of_range_is_rejected(async_client: AsyncClient, session_factory) -> None:
    _, _, aspirant, course = await _seed(session_factory)

    response = await async_client.post(
        f"{API}/courses/{course.id}/reviews",
        json={"course_rating": 6, "institute_rating": 2, "faculty_rating": 2,
              "review_text": "Out of range."},
        headers=auth_headers(aspirant),
    )

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "ValidationError"


@pytest.mark.asyncio
async def test_enrollment_endpoints(async_client: AsyncClient, session_factory) -> None:
    institution, _, aspirant, course = await _seed(session_factory, max_students=2)
    async with session_factory() as session:
        classmate = await make_user(session)
        latecomer = await make_user(session)
        await session.commit()

    enrolled = await async_client.post(
        f"{API}/courses/{course.id}/enrollments", headers=auth_headers(aspirant)
    )
    assert enrolled.status_code == 201
    data = enrolled.json()["data"]
    assert data["current_enrollments"] == 1
    assert data["enrollment"]["payment_status"] == "completed"

    again = await async_client.post(
        f"{API}/courses/{course.id}/enrollments", headers=auth_headers(aspirant)
    )
    assert again.status_code == 409
    assert again.json()["error"]["kind"] == "AlreadyEnrolled"

    last_seat = await async_client.post(
        f"{API}/courses/{course.id}/enrollments", headers=auth_headers(classmate)
    )
    assert last_seat.status_code == 201
    assert last_seat.json()["data"]["current_enrollments"] == 2

    full = await async_client.post(
        f"{API}/courses/{course.id}/enrollments", headers=auth_headers(latecomer)
    )
    assert full.status_code == 409
    assert full.json()["error"]["kind"] == "NotEnrollable"

    mine = await async_client.get(f"{API}/enrollments/mine", headers=auth_headers(aspirant))
    assert [e["course_id"] for e in mine.json()["data"]] == [str(course.id)]

    roster = await async_client.get(
        f"{API}/courses/{course.id}/enrollments", headers=auth_headers(institution)
    )
    assert "Meera" in {e["student"]["name"] for e in roster.json()["data"]}
    assert len(roster.json()["data"]) == 2

    dashboard = await async_client.get(
        f"{API}/institution/enrollments", headers=auth_headers(institution)
    )
    assert len(dashboard.json()["data"]) == 2


@pytest.mark.asyncio
async def test_institution_cannot_enroll(async_client: AsyncClient, session_factory) -> None:
    institution, _, _, course = await _seed(session_factory)

    response = await async_client.post(
        f"{API}/courses/{course.id}/enrollments", headers=auth_headers(institution)
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_shortlist_endpoints(async_client: AsyncClient, session_factory) -> None:
    _, _, aspirant, course = await _seed(session_factory)
    headers = auth_headers(aspirant)

    added = await async_client.post(
        f"{API}/shortlist", json={"course_id": str(course.id), "notes": "Compare fees"},
        headers=headers,
    )
    assert added.status_code == 200
    assert added.json()["message"] == "Course added to shortlist."
    items = added.json()["data"]["items"]
    assert items[0]["notes"] == "Compare fees"
    assert items[0]["course"]["title"] == course.title

    updated = await async_client.patch(
        f"{API}/shortlist/{course.id}", json={"notes": "Call on Monday"}, headers=headers
    )
    assert updated.json()["data"]["items"][0]["notes"] == "Call on Monday"

    removed = await async_client.delete(f"{API}/shortlist/{course.id}", headers=headers)
    assert removed.json()["data"]["items"] == []

    missing = await async_client.delete(f"{API}/shortlist/{course.id}", headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_admin_delist_hides_catalogue(async_client: AsyncClient, session_factory) -> None:
    institution, admin, _, course = await _seed(session_factory)
    async with session_factory() as session:
        await make_course(session, institution, title="Second batch")
        await session.commit()

    no_reason = await async_client.patch(
        f"{API}/admin/institutions/{institution.id}/status",
        json={"is_active": False},
        headers=auth_headers(admin),
    )
    assert no_reason.status_code == 400

    delisted = await async_client.patch(
        f"{API}/admin/institutions/{institution.id}/status",
        json={"is_active": False, "reason": "Fake toppers list"},
        headers=auth_headers(admin),
    )
    assert delisted.status_code == 200
    assert delisted.json()["data"]["suspended_courses"] == 2

    catalogue = await async_client.get(f"{API}/courses")
    assert catalogue.json()["data"]["total"] == 0

    profile = await async_client.get(f"{API}/institutions/{institution.id}")
    assert profile.status_code == 404

    await async_client.patch(
        f"{API}/admin/institutions/{institution.id}/status",
        json={"is_active": True},
        headers=auth_headers(admin),
    )
    still_hidden = await async_client.get(f"{API}/courses")
    assert still_hidden.json()["data"]["total"] == 0

    republished = await async_client.patch(
        f"{API}/admin/courses/{course.id}/publish",
        json={"is_published": True},
        headers=auth_headers(admin),
    )
    assert republished.status_code == 200
    assert (await async_client.get(f"{API}/courses")).json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_institution_analytics(async_client: AsyncClient, session_factory) -> None:
    institution, _, aspirant, course = await _seed(session_factory)
    for _ in range(4):
        await async_client.post(f"{API}/courses/{course.id}/view")
    await async_client.post(f"{API}/courses/{course.id}/enrollments", headers=auth_headers(aspirant))

    response = await async_client.get(
        f"{API}/institution/analytics", headers=auth_headers(institution)
    )

    data = response.json()["data"]
    assert data["total_courses"] == 1
    assert data["total_views"] == 4
    assert data["total_enrollments"] == 1
    assert data["conversion_rate"] == 25.0
    assert data["top_performing_course"] == course.title


@pytest.mark.asyncio
async def test_profile_update(async_client: AsyncClient, session_factory) -> None:
    institution, _, aspirant, _ = await _seed(session_factory)

    forbidden = await async_client.patch(
        f"{API}/users/me", json={"institution_name": "Not mine"}, headers=auth_headers(aspirant)
    )
    assert forbidden.status_code == 403

    updated = await async_client.patch(
        f"{API}/users/me",
        json={"website": "https://lakshya.example.com",
              "address": {"line1": "4 Ring Road", "city": "Jaipur", "state": "Rajasthan"}},
        headers=auth_headers(institution),
    )
    assert updated.status_code == 200

    public = await async_client.get(f"{API}/institutions/{institution.id}")
    page = public.json()["data"]
    assert page["city"] == "Jaipur"
    assert page["address"] is None
    assert page["course_count"] == 1
