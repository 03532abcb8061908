"""Booking Queries: shared read helpers over the bookings table.

Invariants:
    - Live bookings exclude soft-deleted rows and duplicate/deleted statuses
    - Read-only: no helper here writes or commits
"""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.core.domain_types import EXCLUDED_BOOKING_STATUSES
from studio_sales.models.booking import Booking

_EXCLUDED = [s.value for s in EXCLUDED_BOOKING_STATUSES]


def live_bookings_query():
    return select(Booking).where(
        Booking.deleted_at.is_(None),
        Booking.status.not_in(_EXCLUDED),
    )


async def get_booking(db: AsyncSession, booking_id: UUID) -> Booking | None:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    return result.scalar_one_or_none()


async def recent_live_bookings(
    db: AsyncSession, today: date, lookback_days: int,
) -> list[Booking]:
    """Live bookings with a class date inside the lookback window, newest first."""
    since = today - timedelta(days=lookback_days)
    result = await db.execute(
        live_bookings_query()
        .where(Booking.class_date >= since)
        .order_by(Booking.class_date.desc(), Booking.created_at.desc()),
    )
    return list(result.scalars().all())
