"""Attribution Service: loads the bookings the pure resolver needs.

Invariants:
    - Never raises on lookup failure: a failed read degrades to the acting-staff
      and Unknown fallbacks, logged at WARNING
    - A booking id that does not exist is treated like no booking
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.core.attribution import Attribution
from studio_sales.core.attribution import resolve_attribution as resolve_from_records
from studio_sales.core.matching import DEFAULT_FUZZY_THRESHOLD
from studio_sales.services.booking_queries import get_booking, recent_live_bookings

logger = logging.getLogger(__name__)


async def resolve_attribution(
    db: AsyncSession,
    booking_id: UUID | None,
    client_name: str,
    acting_staff: str | None,
    today: date | None = None,
    lookback_days: int = 365,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> Attribution:
    """Credited staff + provenance for a sale. See core/attribution.py for the chain."""
    booking = None
    candidates = []
    try:
        if booking_id is not None:
            booking = await get_booking(db, booking_id)
        candidates = await recent_live_bookings(db, today or date.today(), lookback_days)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(
            f"Attribution lookup failed, using fallbacks: {e}",
            extra={"booking_id": booking_id, "acting_staff": acting_staff},
        )

    attribution = resolve_from_records(
        booking, client_name, acting_staff, candidates, fuzzy_threshold,
    )
    if attribution.ambiguous:
        logger.info(
            f"Ambiguous attribution for {client_name!r}: "
            f"{attribution.staff_name} via {attribution.provenance.value}",
            extra={
                "booking_id": booking_id,
                "acting_staff": acting_staff,
                "error_code": "ATTRIBUTION_AMBIGUOUS",
            },
        )
    return attribution
