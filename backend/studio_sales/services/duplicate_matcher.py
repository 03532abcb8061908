"""Duplicate Matcher Service: ranks existing bookings for intake duplicate warnings.

Invariants:
    - Read-only, never blocks intake: an empty list means "no likely duplicate"
    - Only live bookings inside the lookback window are considered
"""

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.core.matching import (
    DEFAULT_FUZZY_THRESHOLD, DEFAULT_PARTIAL_THRESHOLD, MIN_QUERY_LENGTH,
    RankedMatch, rank_candidates,
)
from studio_sales.services.booking_queries import recent_live_bookings


async def find_duplicate_candidates(
    db: AsyncSession,
    name: str,
    phone: str | None = None,
    today: date | None = None,
    lookback_days: int = 365,
    limit: int = 5,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    partial_threshold: float = DEFAULT_PARTIAL_THRESHOLD,
) -> list[RankedMatch]:
    if not name or len(name.strip()) < MIN_QUERY_LENGTH:
        return []
    candidates = await recent_live_bookings(db, today or date.today(), lookback_days)
    return rank_candidates(
        name, phone, candidates, limit=limit,
        fuzzy_threshold=fuzzy_threshold, partial_threshold=partial_threshold,
    )
