"""Booking Routes: admin intro-owner override and follow-up scheduling."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.config import Settings, get_settings
from studio_sales.infrastructure.database import get_db
from studio_sales.schemas.bookings import (
    FollowUpItemResponse, FollowUpScheduleRequest, IntroOwnerResponse,
    IntroOwnerUpdate, RefreshOverdueRequest,
)
from studio_sales.services.booking_admin import set_intro_owner
from studio_sales.services.follow_ups import refresh_overdue, schedule_follow_ups

router = APIRouter(prefix="/api/v1", tags=["bookings"])


@router.put("/bookings/{booking_id}/intro-owner", response_model=IntroOwnerResponse)
async def update_intro_owner(
    booking_id: UUID, body: IntroOwnerUpdate, db: AsyncSession = Depends(get_db),
):
    booking = await set_intro_owner(
        db, booking_id, body.owner, body.edited_by, body.override_reason,
    )
    return IntroOwnerResponse(
        booking_id=booking.id,
        intro_owner=booking.intro_owner,
        intro_owner_locked=booking.intro_owner_locked,
        last_edited_by=booking.last_edited_by,
        edit_reason=booking.edit_reason,
    )


@router.post("/follow-ups/schedule", response_model=list[FollowUpItemResponse])
async def schedule(
    body: FollowUpScheduleRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    items = await schedule_follow_ups(
        db, body.booking_id, body.person_type, body.trigger_date,
        settings.no_show_cadence, settings.didnt_buy_cadence,
    )
    return [
        FollowUpItemResponse(
            id=i.id, touch_number=i.touch_number,
            scheduled_date=i.scheduled_date, status=i.status,
        )
        for i in items
    ]


@router.post("/follow-ups/refresh-overdue")
async def mark_overdue(
    body: RefreshOverdueRequest | None = None, db: AsyncSession = Depends(get_db),
):
    updated = await refresh_overdue(db, body.today if body else None)
    return {"updated": updated}
