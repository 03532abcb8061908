"""MonthlyCountEntry ORM: one ledger row per qualifying membership event.

Invariants:
    - (client_key, event_date, reason) is unique: at most one row per qualifying event
    - count_value is the running active-member count after this event
    - Upgrades and add-ons never produce a row
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from studio_sales.db.base import Base


class MonthlyCountEntry(Base):
    __tablename__ = "monthly_count_entries"
    __table_args__ = (
        UniqueConstraint(
            "client_key", "event_date", "reason", name="uq_ledger_event",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_key: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    count_value: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_record_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
