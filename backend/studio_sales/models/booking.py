"""Booking ORM: a scheduled trial class ("intro") for a prospective client.

Invariants:
    - status holds a BookingStatus value (core/domain_types.py)
    - client_key is the normalized client name, kept in sync on write
    - A locked intro_owner changes only through the admin override service
    - Soft delete only: deleted_at set, row kept; duplicate/deleted rows are
      excluded from metrics and attribution lookups

Design Decisions:
    - phone stored as entered; the malformed_phone audit check canonicalizes it
    - originating_booking_id links a 2nd intro to the first booking of its lineage
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from studio_sales.db.base import Base


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_key: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    class_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    intro_time: Mapped[str | None] = mapped_column(String(20), nullable=True)
    coach_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    booked_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    intro_owner: Mapped[str | None] = mapped_column(String(100), nullable=True)
    intro_owner_locked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    lead_source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(40), nullable=False, default="active",
    )
    originating_booking_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=True,
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    closed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_edited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_edited_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    edit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
