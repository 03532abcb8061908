"""Booking Admin: the explicit admin path for changing a booking's intro owner.

Invariants:
    - A locked intro owner changes only with a non-empty override reason
    - The owner is always locked after an admin edit
    - last_edited_at / last_edited_by / edit_reason record every change
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.core.errors import (
    LockedOwnerError, ResourceNotFoundError, SalesEventValidationError,
)
from studio_sales.models.booking import Booking
from studio_sales.services.booking_queries import get_booking

logger = logging.getLogger(__name__)


async def set_intro_owner(
    db: AsyncSession,
    booking_id: UUID,
    owner: str,
    edited_by: str,
    override_reason: str | None = None,
) -> Booking:
    if not owner or not owner.strip():
        raise SalesEventValidationError("Intro owner is required", "owner")
    booking = await get_booking(db, booking_id)
    if booking is None:
        raise ResourceNotFoundError("Booking", str(booking_id))

    reason = (override_reason or "").strip()
    if booking.intro_owner_locked and not reason:
        raise LockedOwnerError(str(booking_id))

    previous = booking.intro_owner
    booking.intro_owner = owner.strip()
    booking.intro_owner_locked = True
    booking.last_edited_at = datetime.now(timezone.utc)
    booking.last_edited_by = edited_by
    booking.edit_reason = reason or "Set intro owner"
    await db.commit()
    logger.info(
        f"Intro owner {previous!r} -> {booking.intro_owner!r}",
        extra={"booking_id": booking_id, "acting_staff": edited_by},
    )
    return booking
