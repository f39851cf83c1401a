"""Shortlist schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.courses.schemas import CourseSummary


class AddToShortlistRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    course_id: UUID
    notes: str | None = Field(default=None, max_length=500)


class UpdateNotesRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    notes: str | None = Field(default=None, max_length=500)


class ShortlistItemResponse(BaseModel):
    course_id: UUID
    notes: str | None = None
    added_at: datetime
    course: CourseSummary | None = None


class ShortlistResponse(BaseModel):
    id: UUID
    user_id: UUID
    items: list[ShortlistItemResponse]
    updated_at: datetime
