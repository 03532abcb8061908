"""Outcome Schemas: request/response models for commission, attribution and reconciliation.

Invariants:
    - Tier is optional at the boundary: a missing tier reaches the reconciler and is
      rejected there as a VALIDATION error naming the field
    - Names are stripped; event_kind is the closed EventKind enumeration
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from studio_sales.core.domain_types import EventKind


class CommissionRequest(BaseModel):
    tier: str | None = Field(None, max_length=100)
    event_kind: EventKind = EventKind.NEW
    previous_tier: str | None = Field(None, max_length=100)


class CommissionResponse(BaseModel):
    amount: Decimal
    tier: str
    event_kind: EventKind
    warnings: list[str] = []
    anomaly: str | None = None
    needs_manual_entry: bool = False


class AttributionRequest(BaseModel):
    booking_id: UUID | None = None
    client_name: str = Field(min_length=1, max_length=200)
    acting_staff: str | None = Field(None, max_length=100)

    @field_validator("client_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("client_name cannot be empty or whitespace")
        return v


class AttributionResponse(BaseModel):
    staff_name: str
    provenance: str
    ambiguous: bool
    source_booking_id: UUID | None = None
    note: str | None = None


class EligibilityRequest(BaseModel):
    event_kind: EventKind
    client_name: str = Field(min_length=1, max_length=200)
    event_date: date
    is_reactivation: bool = False


class EligibilityResponse(BaseModel):
    eligible: bool
    should_insert: bool
    already_recorded: bool
    reason: str | None = None
    explanation: str


class ReconcileRequest(BaseModel):
    """One sales event. acting_staff is explicit: there is no ambient current user."""
    booking_id: UUID | None = None
    client_name: str = Field(max_length=200)
    event_kind: EventKind = EventKind.NEW
    tier: str | None = Field(None, max_length=100)
    previous_tier: str | None = Field(None, max_length=100)
    event_date: date
    acting_staff: str | None = Field(None, max_length=100)
    run_id: UUID | None = None
    sale_record_id: UUID | None = None
    note: str | None = Field(None, max_length=2000)
    is_reactivation: bool = False
    is_self_gen: bool = False
    lead_source: str | None = Field(None, max_length=100)
