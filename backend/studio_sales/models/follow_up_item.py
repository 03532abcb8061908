"""FollowUpQueueItem ORM: a scheduled re-contact touch for a non-converting prospect.

Invariants:
    - status in {pending, overdue, converted}
    - Marked converted (with converted_at) when the person buys, never deleted
    - (booking_id, person_type, touch_number) is unique
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Date, DateTime, ForeignKey, Integer, String, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from studio_sales.db.base import Base


class FollowUpQueueItem(Base):
    __tablename__ = "follow_up_queue"
    __table_args__ = (
        UniqueConstraint(
            "booking_id", "person_type", "touch_number",
            name="uq_follow_up_touch",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=True, index=True,
    )
    person_name: Mapped[str] = mapped_column(String(200), nullable=False)
    person_key: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    person_type: Mapped[str] = mapped_column(String(20), nullable=False)
    touch_number: Mapped[int] = mapped_column(Integer, nullable=False)
    trigger_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    converted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
