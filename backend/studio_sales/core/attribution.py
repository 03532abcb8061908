"""Attribution Resolution: deterministic fallback chain for the credited staff member.

Invariants:
    - PURE: booking and candidate bookings are passed in by the shell
    - First match wins:
        1. locked intro_owner (frozen, no further checks)
        2. non-empty unlocked intro_owner
        3. booked_by on the originating booking
        4. most recent live booking matching the client name (exact or fuzzy)
        5. the acting staff member
        6. literal "Unknown"
    - Always resolves to a non-empty string, never raises
    - Soft-deleted and duplicate bookings are ignored at every step

Design Decisions:
    - Acting staff is an explicit argument: no ambient "current user" state
    - Provenance returned with the name so audit can trace which rule credited the sale
    - ambiguous marks best-guess credit (conflicting name matches, fallback to the
      acting staff when a booking was supplied, or Unknown); it never blocks
"""

from dataclasses import dataclass
from uuid import UUID

from studio_sales.core.domain_types import AttributionRule, MatchType
from studio_sales.core.matching import (
    DEFAULT_FUZZY_THRESHOLD, classify_match, is_candidate,
)
from studio_sales.core.repository_protocols import BookingLike

UNKNOWN_STAFF = "Unknown"


@dataclass(frozen=True)
class Attribution:
    staff_name: str
    provenance: AttributionRule
    ambiguous: bool = False
    source_booking_id: UUID | None = None
    note: str | None = None

    def to_dict(self) -> dict:
        return {
            "staff_name": self.staff_name,
            "provenance": self.provenance.value,
            "ambiguous": self.ambiguous,
            "source_booking_id": (
                str(self.source_booking_id) if self.source_booking_id else None
            ),
            "note": self.note,
        }


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def credited_staff(booking: BookingLike) -> str | None:
    """Staff credited on a single booking: owner first, then booked_by."""
    return _clean(booking.intro_owner) or _clean(booking.booked_by)


def resolve_attribution(
    booking: BookingLike | None,
    client_name: str,
    acting_staff: str | None,
    recent_bookings: "list[BookingLike]" = (),
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> Attribution:
    """Resolve the credited staff member. See module docstring for the chain."""
    if booking is not None and is_candidate(booking):
        owner = _clean(booking.intro_owner)
        if booking.intro_owner_locked and owner:
            return Attribution(owner, AttributionRule.LOCKED_OWNER, source_booking_id=booking.id)
        if owner:
            return Attribution(owner, AttributionRule.INTRO_OWNER, source_booking_id=booking.id)
        booked_by = _clean(booking.booked_by)
        if booked_by:
            return Attribution(booked_by, AttributionRule.BOOKED_BY, source_booking_id=booking.id)

    by_name = _resolve_from_recent(
        client_name, recent_bookings, fuzzy_threshold,
        exclude_id=booking.id if booking is not None else None,
    )
    if by_name is not None:
        return by_name

    acting = _clean(acting_staff)
    if acting:
        return Attribution(
            acting, AttributionRule.ACTING_STAFF,
            ambiguous=booking is not None,
            note=(
                "Booking carries no owner or booked_by; credited to acting staff"
                if booking is not None else None
            ),
        )
    return Attribution(
        UNKNOWN_STAFF, AttributionRule.UNKNOWN, ambiguous=True,
        note="No attribution signal available",
    )


def _resolve_from_recent(
    client_name: str,
    recent_bookings: "list[BookingLike]",
    fuzzy_threshold: float,
    exclude_id: UUID | None,
) -> Attribution | None:
    """Rule 4: most recent live booking for this client that names a staff member."""
    matched = []
    for candidate in recent_bookings:
        if candidate.id == exclude_id or not is_candidate(candidate):
            continue
        staff = credited_staff(candidate)
        if not staff:
            continue
        match_type, _ = classify_match(client_name, candidate.client_name, fuzzy_threshold)
        if match_type in (MatchType.EXACT, MatchType.FUZZY):
            matched.append((candidate, staff, match_type))
    if not matched:
        return None

    matched.sort(key=lambda m: (m[0].class_date, m[0].created_at), reverse=True)
    best, staff, match_type = matched[0]
    distinct_staff = {s for _, s, _ in matched}
    ambiguous = len(distinct_staff) > 1 or match_type == MatchType.FUZZY
    note = None
    if len(distinct_staff) > 1:
        note = f"Earlier bookings credit {', '.join(sorted(distinct_staff - {staff}))}"
    elif match_type == MatchType.FUZZY:
        note = f'Matched on similar name "{best.client_name}"'
    return Attribution(
        staff, AttributionRule.RECENT_BOOKING,
        ambiguous=ambiguous, source_booking_id=best.id, note=note,
    )
