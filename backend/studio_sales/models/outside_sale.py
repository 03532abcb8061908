"""OutsideSale ORM: a membership sale not tied to a tracked booking.

Invariants:
    - Same commission/tier/attribution shape as IntroRun
    - Upgrades and add-ons are always outside sales, even for booked clients
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from studio_sales.db.base import Base


class OutsideSale(Base):
    __tablename__ = "outside_sales"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_key: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    date_closed: Mapped[date] = mapped_column(Date, nullable=False)
    tier: Mapped[str | None] = mapped_column(String(60), nullable=True)
    sale_kind: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
    previous_tier: Mapped[str | None] = mapped_column(String(60), nullable=True)
    commission_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True,
    )
    intro_owner: Mapped[str | None] = mapped_column(String(100), nullable=True)
    attribution_provenance: Mapped[str | None] = mapped_column(
        String(40), nullable=True,
    )
    attribution_flagged: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    lead_source: Mapped[str | None] = mapped_column(String(100), nullable=True)
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
