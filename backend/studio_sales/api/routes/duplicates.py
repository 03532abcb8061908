"""Duplicate Routes: intake-time duplicate client lookup. Never blocks intake."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.config import Settings, get_settings
from studio_sales.infrastructure.database import get_db
from studio_sales.schemas.bookings import DuplicateMatchResponse
from studio_sales.services.duplicate_matcher import find_duplicate_candidates

router = APIRouter(prefix="/api/v1/duplicates", tags=["duplicates"])


@router.get("", response_model=list[DuplicateMatchResponse])
async def find_duplicates(
    name: str = Query(..., max_length=200),
    phone: str | None = Query(None, max_length=40),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    matches = await find_duplicate_candidates(
        db, name, phone,
        lookback_days=settings.duplicate_lookback_days,
        limit=settings.duplicate_match_limit,
        fuzzy_threshold=settings.fuzzy_match_threshold,
        partial_threshold=settings.partial_match_threshold,
    )
    return [
        DuplicateMatchResponse(
            booking_id=m.booking_id,
            client_name=m.client_name,
            class_date=m.class_date,
            status=m.status,
            booked_by=m.booked_by,
            match_type=m.match_type.value,
            similarity=m.similarity,
            phone_match=m.phone_match,
            warning=m.warning,
        )
        for m in matches
    ]
