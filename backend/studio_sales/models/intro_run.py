"""IntroRun ORM: the logged outcome of a booking, including any sale it produced.

Invariants:
    - commission_amount is re-derivable from (tier, sale_kind, previous_tier) via
      core/commission.py; the commission_mismatch audit check verifies it
    - result holds an IntroResult value
    - attribution_flagged marks a best-guess credited staff member for review

Design Decisions:
    - booking_id nullable: legacy runs logged without a booking still count and are
      listed by the unlinked_runs audit check
    - intro_owner denormalized from attribution: reporting reads it without a join
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Numeric, String, Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from studio_sales.db.base import Base


class IntroRun(Base):
    __tablename__ = "intro_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=True, index=True,
    )
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    run_date: Mapped[date] = mapped_column(Date, nullable=False)
    result: Mapped[str] = mapped_column(
        String(40), nullable=False, default="UNRESOLVED",
    )
    tier: Mapped[str | None] = mapped_column(String(60), nullable=True)
    sale_kind: Mapped[str | None] = mapped_column(String(20), nullable=True)
    previous_tier: Mapped[str | None] = mapped_column(String(60), nullable=True)
    commission_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True,
    )
    buy_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    intro_owner: Mapped[str | None] = mapped_column(String(100), nullable=True)
    attribution_provenance: Mapped[str | None] = mapped_column(
        String(40), nullable=True,
    )
    attribution_flagged: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    is_self_gen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_edited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_edited_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
