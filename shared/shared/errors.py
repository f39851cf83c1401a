"""Stable error kinds shared by every service.

A failure leaving a service is always one of these kinds; the HTTP status is
derived from the kind so call sites never pick status codes themselves.
"""
from enum import Enum

from fastapi import HTTPException, status


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "ValidationError"
    NOT_FOUND = "NotFound"
    UNAUTHENTICATED = "Unauthenticated"
    FORBIDDEN = "Forbidden"
    DUPLICATE_REVIEW = "DuplicateReview"
    ALREADY_ENROLLED = "AlreadyEnrolled"
    NOT_ENROLLABLE = "NotEnrollable"
    INVALID_STATE = "InvalidState"
    UPLOAD_REJECTED = "UploadRejected"
    CONFLICT = "Conflict"
    RATE_LIMITED = "RateLimited"
    STORE_UNAVAILABLE = "StoreUnavailable"
    INTERNAL_ERROR = "InternalError"


KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UPLOAD_REJECTED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.DUPLICATE_REVIEW: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_ENROLLED: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_ENROLLABLE: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Fallback for plain HTTPExceptions raised by FastAPI / Starlette internals
STATUS_KIND: dict[int, ErrorKind] = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHENTICATED,
    status.HTTP_403_FORBIDDEN: ErrorKind.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorKind.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorKind.CONFLICT,
    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: ErrorKind.UPLOAD_REJECTED,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ErrorKind.VALIDATION_ERROR,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorKind.RATE_LIMITED,
    status.HTTP_503_SERVICE_UNAVAILABLE: ErrorKind.STORE_UNAVAILABLE,
}


class ApiError(HTTPException):
    """HTTP exception tagged with a stable error kind."""

    def __init__(self, kind: ErrorKind, message: str, headers: dict[str, str] | None = None) -> None:
        self.kind = kind
        super().__init__(status_code=KIND_STATUS[kind], detail=message, headers=headers)


def kind_for_status(status_code: int) -> ErrorKind:
    if status_code >= 500:
        return ErrorKind.INTERNAL_ERROR
    return STATUS_KIND.get(status_code, ErrorKind.VALIDATION_ERROR)
