"""OutcomeEvent ORM: append-only log of every reconciliation attempt.

Invariants:
    - One row per reconcile call, written after the step sequence finishes
    - step_statuses records every step, including failed and blocked ones
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean, Date, DateTime, JSON, Numeric, String, Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from studio_sales.db.base import Base


class OutcomeEvent(Base):
    __tablename__ = "outcome_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True,
    )
    sale_record_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    event_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    tier: Mapped[str | None] = mapped_column(String(60), nullable=True)
    commission_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True,
    )
    credited_staff: Mapped[str] = mapped_column(String(100), nullable=False)
    attribution_provenance: Mapped[str] = mapped_column(String(40), nullable=False)
    attribution_ambiguous: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    final_state: Mapped[str] = mapped_column(String(30), nullable=False)
    step_statuses: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    acting_staff: Mapped[str | None] = mapped_column(String(100), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
