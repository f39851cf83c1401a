"""
Access policy — who sees what.

Pure functions of (resource, viewer). Rules, first match wins:

  1. Admin            → everything, including moderation metadata.
  2. Owning institution → its own drafts, all reviews and enrollments on its
                          own courses, its own contact details.
  3. Everyone else    → live courses only (published + is_published),
                          approved+visible reviews only, no contact person
                          or street address on institution profiles.

Anonymous callers are always rule 3; the token verifier yields ``None`` for
them, so a role claim without a valid token never reaches this module.
"""
from __future__ import annotations

import enum
import uuid
from collections.abc import Iterable

from shared.constants import Role
from shared.models.user import CurrentUser

from app.models.course import Course
from app.models.enums import ReviewStatus
from app.models.review import Review
from app.models.user import User


class Access(str, enum.Enum):
    ADMIN = "admin"
    OWNER = "owner"
    PUBLIC = "public"


def resolve_access(owner_id: uuid.UUID, viewer: CurrentUser | None) -> Access:
    if viewer is None:
        return Access.PUBLIC
    if viewer.role == Role.ADMIN:
        return Access.ADMIN
    if viewer.role == Role.INSTITUTION and viewer.id == owner_id:
        return Access.OWNER
    return Access.PUBLIC


def course_access(course: Course, viewer: CurrentUser | None) -> Access:
    return resolve_access(course.institution_id, viewer)


def can_view_course(course: Course, viewer: CurrentUser | None) -> bool:
    if course_access(course, viewer) is not Access.PUBLIC:
        return True
    return course.is_live


def is_publicly_visible(review: Review) -> bool:
    return review.status == ReviewStatus.APPROVED and review.is_visible


def visible_reviews(
    course: Course, reviews: Iterable[Review], viewer: CurrentUser | None
) -> list[Review]:
    if course_access(course, viewer) is not Access.PUBLIC:
        return list(reviews)
    return [r for r in reviews if is_publicly_visible(r)]


def can_mutate_course(course: Course, viewer: CurrentUser) -> bool:
    return course_access(course, viewer) is not Access.PUBLIC


def institution_profile_view(institution: User, viewer: CurrentUser | None) -> dict:
    """Shape an institution profile for ``viewer``."""
    address = institution.address or {}
    view = {
        "id": institution.id,
        "institution_name": institution.institution_name,
        "institution_type": institution.institution_type,
        "is_verified": institution.is_verified,
        "website": institution.website,
        "description": institution.description,
        "city": address.get("city"),
        "state": address.get("state"),
        "created_at": institution.created_at,
    }
    access = resolve_access(institution.id, viewer)
    if access is Access.PUBLIC:
        return view
    view.update(
        name=institution.name,
        email=institution.email,
        contact_person=institution.contact_person,
        address=institution.address,
        is_active=institution.is_active,
        verified_at=institution.verified_at,
    )
    return view
