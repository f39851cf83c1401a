"""Domain exception classes for the marketplace service.

Raised by service-layer code and caught by controllers, which turn them into
``ApiError`` responses. Each class carries the stable error kind it maps to.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from shared.errors import ApiError, ErrorKind

logger = logging.getLogger(__name__)


class DomainError(Exception):
    kind: ErrorKind = ErrorKind.VALIDATION_ERROR
    default_message: str = "Invalid request."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(DomainError):
    kind = ErrorKind.VALIDATION_ERROR


class NotFound(DomainError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found."


class CourseNotFound(NotFound):
    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Course not found: {identifier}")


class ReviewNotFound(NotFound):
    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Review not found: {identifier}")


class EnrollmentNotFound(NotFound):
    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Enrollment not found: {identifier}")


class UserNotFound(NotFound):
    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"User not found: {identifier}")


class InvalidCredentials(DomainError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Invalid email or password."


class InvalidOtp(DomainError):
    """Wrong, expired or exhausted one-time code."""

    kind = ErrorKind.VALIDATION_ERROR
    default_message = "Invalid or expired OTP."


class Forbidden(DomainError):
    kind = ErrorKind.FORBIDDEN
    default_message = "You are not allowed to perform this action."


class NotCourseOwner(Forbidden):
    default_message = "Not the owner of this course."


class AccountInactive(Forbidden):
    default_message = "Account is deactivated. Please contact support."


class DuplicateReview(DomainError):
    kind = ErrorKind.DUPLICATE_REVIEW
    default_message = "You have already reviewed this course."


class AlreadyEnrolled(DomainError):
    kind = ErrorKind.ALREADY_ENROLLED
    default_message = "Already enrolled in this course."


class NotEnrollable(DomainError):
    kind = ErrorKind.NOT_ENROLLABLE
    default_message = "Course is not open for enrollment."


class InvalidState(DomainError):
    kind = ErrorKind.INVALID_STATE
    default_message = "Operation not allowed in the current state."


class UploadRejected(DomainError):
    kind = ErrorKind.UPLOAD_REJECTED
    default_message = "Upload rejected."


class Conflict(DomainError):
    """Uniqueness clash, or optimistic-concurrency retries exhausted."""

    kind = ErrorKind.CONFLICT
    default_message = "The resource was modified concurrently. Please retry."


class StoreUnavailable(DomainError):
    kind = ErrorKind.STORE_UNAVAILABLE
    default_message = "Storage is temporarily unavailable."


def to_http_error(exc: Exception) -> Exception:
    """Map a domain (or store) exception onto an ``ApiError``.

    ``ApiError`` instances already raised lower down pass through unchanged;
    anything unknown is re-raised as-is so the envelope middleware logs it.
    """
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, DomainError):
        return ApiError(exc.kind, exc.message)
    if isinstance(exc, SQLAlchemyError):
        logger.error("Store failure: %s", exc)
        return ApiError(ErrorKind.STORE_UNAVAILABLE, StoreUnavailable.default_message)
    return exc
