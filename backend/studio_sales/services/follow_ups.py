"""Follow-Up Queue Service: schedules, ages and converts re-contact touches.

Invariants:
    - Scheduling is idempotent per (booking, person_type, touch_number)
    - Conversion updates status to converted with converted_at; items are never deleted
    - refresh_overdue only moves pending -> overdue
"""

import logging
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.core.domain_types import (
    FollowUpPersonType, FollowUpStatus, OPEN_FOLLOW_UP_STATUSES,
)
from studio_sales.core.errors import ResourceNotFoundError
from studio_sales.core.follow_up_cadence import cadence_for, plan_touches
from studio_sales.core.names import client_key
from studio_sales.models.follow_up_item import FollowUpQueueItem
from studio_sales.services.booking_queries import get_booking

logger = logging.getLogger(__name__)

_OPEN = [s.value for s in OPEN_FOLLOW_UP_STATUSES]


async def schedule_follow_ups(
    db: AsyncSession,
    booking_id: UUID,
    person_type: FollowUpPersonType,
    trigger_date: date,
    no_show_cadence: "list[int] | tuple[int, ...]",
    didnt_buy_cadence: "list[int] | tuple[int, ...]",
) -> list[FollowUpQueueItem]:
    """Create the missing touches of the cadence for a booking. Returns all its touches."""
    booking = await get_booking(db, booking_id)
    if booking is None:
        raise ResourceNotFoundError("Booking", str(booking_id))

    result = await db.execute(
        select(FollowUpQueueItem).where(
            FollowUpQueueItem.booking_id == booking_id,
            FollowUpQueueItem.person_type == person_type.value,
        ),
    )
    existing = {item.touch_number: item for item in result.scalars().all()}

    cadence = cadence_for(person_type, no_show_cadence, didnt_buy_cadence)
    created = 0
    for touch in plan_touches(trigger_date, cadence):
        if touch.touch_number in existing:
            continue
        item = FollowUpQueueItem(
            booking_id=booking_id,
            person_name=booking.client_name,
            person_key=client_key(booking.client_name),
            person_type=person_type.value,
            touch_number=touch.touch_number,
            trigger_date=trigger_date,
            scheduled_date=touch.scheduled_date,
            status=FollowUpStatus.PENDING.value,
        )
        db.add(item)
        existing[touch.touch_number] = item
        created += 1
    await db.commit()
    logger.info(
        f"Scheduled {created} {person_type.value} follow-ups",
        extra={"booking_id": booking_id},
    )
    return [existing[n] for n in sorted(existing)]


async def refresh_overdue(db: AsyncSession, today: date | None = None) -> int:
    """Flip pending touches scheduled before today to overdue. Returns rows changed."""
    today = today or date.today()
    result = await db.execute(
        update(FollowUpQueueItem)
        .where(
            FollowUpQueueItem.status == FollowUpStatus.PENDING.value,
            FollowUpQueueItem.scheduled_date < today,
        )
        .values(status=FollowUpStatus.OVERDUE.value)
        .execution_options(synchronize_session=False),
    )
    await db.commit()
    return result.rowcount or 0


async def mark_converted(
    db: AsyncSession, booking_id: UUID | None, client_name: str,
) -> int:
    """Convert every open touch for the booking or the person. Caller commits."""
    key = client_key(client_name)
    conditions = [FollowUpQueueItem.person_key == key]
    if booking_id is not None:
        conditions.append(FollowUpQueueItem.booking_id == booking_id)
    result = await db.execute(
        update(FollowUpQueueItem)
        .where(
            FollowUpQueueItem.status.in_(_OPEN),
            or_(*conditions),
        )
        .values(
            status=FollowUpStatus.CONVERTED.value,
            converted_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False),
    )
    return result.rowcount or 0
