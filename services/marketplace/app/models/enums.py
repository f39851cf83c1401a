import enum

import sqlalchemy as sa

from shared.constants import Role


class InstitutionType(str, enum.Enum):
    COACHING = "coaching"
    UNIVERSITY = "university"
    COLLEGE = "college"
    OTHER = "other"


class CourseStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class PromotionLevel(str, enum.Enum):
    NONE = "none"
    BASIC = "basic"
    PREMIUM = "premium"
    FEATURED = "featured"


class CourseCategory(str, enum.Enum):
    PRELIMS = "prelims"
    MAINS = "mains"
    PRELIMS_CUM_MAINS = "prelims-cum-mains"
    OPTIONALS = "optionals"
    TEST_SERIES = "test-series"
    FOUNDATION = "foundation"
    INTERVIEW = "interview"


class CourseType(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    HYBRID = "hybrid"
    WEEKEND = "weekend"
    EVENING = "evening"


class DeliveryType(str, enum.Enum):
    LIVE = "live"
    RECORDED = "recorded"
    HYBRID = "hybrid"


class CourseLanguage(str, enum.Enum):
    ENGLISH = "english"
    HINDI = "hindi"
    TAMIL = "tamil"
    TELUGU = "telugu"
    BENGALI = "bengali"
    MARATHI = "marathi"
    GUJARATI = "gujarati"
    KANNADA = "kannada"
    MALAYALAM = "malayalam"
    PUNJABI = "punjabi"
    URDU = "urdu"


class Weekday(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class SessionType(str, enum.Enum):
    LECTURE = "lecture"
    TEST = "test"
    DOUBT_CLEARING = "doubt-clearing"
    DISCUSSION = "discussion"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class ModerationAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    ARCHIVE = "archive"


class VoteKind(str, enum.Enum):
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"


# Portable enum column types: native ENUM on PostgreSQL, CHECK-constrained VARCHAR elsewhere.
def _enum(enum_cls: type[enum.Enum], name: str) -> sa.Enum:
    return sa.Enum(
        enum_cls,
        name=name,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


user_role_enum = _enum(Role, "user_role")
institution_type_enum = _enum(InstitutionType, "institution_type")
course_status_enum = _enum(CourseStatus, "course_status")
promotion_level_enum = _enum(PromotionLevel, "promotion_level")
course_category_enum = _enum(CourseCategory, "course_category")
delivery_type_enum = _enum(DeliveryType, "delivery_type")
payment_status_enum = _enum(PaymentStatus, "payment_status")
review_status_enum = _enum(ReviewStatus, "review_status")
vote_kind_enum = _enum(VoteKind, "vote_kind")
