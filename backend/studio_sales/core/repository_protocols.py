"""Boundary Protocols: structural contracts between core and shell.

Invariants:
    - Core NEVER imports ORM models; it reads records through these Protocols
    - ORM rows satisfy the Protocols structurally, tests may pass plain objects

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Read-only attribute sets: pure functions never mutate a record they inspect
"""

from datetime import date, datetime
from typing import Protocol
from uuid import UUID


class BookingLike(Protocol):
    """Fields of a trial-class booking the core reasons about."""
    id: UUID
    client_name: str
    phone: str | None
    class_date: date
    coach_name: str | None
    booked_by: str | None
    intro_owner: str | None
    intro_owner_locked: bool
    lead_source: str | None
    status: str
    deleted_at: datetime | None
    created_at: datetime
