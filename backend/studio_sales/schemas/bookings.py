"""Booking Schemas: intro-owner override, follow-up scheduling and duplicate matches."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from studio_sales.core.domain_types import FollowUpPersonType


class IntroOwnerUpdate(BaseModel):
    owner: str = Field(min_length=1, max_length=100)
    edited_by: str = Field(min_length=1, max_length=100)
    override_reason: str | None = Field(None, max_length=500)

    @field_validator("owner", "edited_by")
    @classmethod
    def strip_value(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("value cannot be empty or whitespace")
        return v


class IntroOwnerResponse(BaseModel):
    booking_id: UUID
    intro_owner: str
    intro_owner_locked: bool
    last_edited_by: str | None = None
    edit_reason: str | None = None


class FollowUpScheduleRequest(BaseModel):
    booking_id: UUID
    person_type: FollowUpPersonType
    trigger_date: date


class FollowUpItemResponse(BaseModel):
    id: UUID
    touch_number: int
    scheduled_date: date
    status: str


class RefreshOverdueRequest(BaseModel):
    today: date | None = None


class DuplicateMatchResponse(BaseModel):
    booking_id: UUID
    client_name: str
    class_date: date
    status: str
    booked_by: str | None = None
    match_type: str
    similarity: float
    phone_match: bool
    warning: str
