"""Enrollment domain Pydantic V2 schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import PaymentStatus


class EnrollRequest(BaseModel):
    amount: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2,
        description="Defaults to the course price.",
    )


class ConfirmPaymentRequest(BaseModel):
    payment_status: PaymentStatus = Field(
        description="completed | failed from pending; pending from failed (retry)."
    )


class EnrolledStudent(BaseModel):
    id: UUID
    name: str
    email: str


class EnrolledCourse(BaseModel):
    id: UUID
    title: str
    start_date: date
    end_date: date
    institution_id: UUID


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    user_id: UUID
    payment_status: PaymentStatus
    amount: float
    enrolled_at: datetime
    course: EnrolledCourse | None = None
    student: EnrolledStudent | None = None


class EnrollmentResult(BaseModel):
    enrollment: EnrollmentResponse
    current_enrollments: int
    max_students: int
