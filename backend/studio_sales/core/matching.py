"""Duplicate Matching: ranks existing bookings against a name/phone query.

Invariants:
    - PURE: candidates are passed in, nothing is fetched here
    - Never blocks: returns ranked matches with warnings, the human decides
    - Soft-deleted and duplicate-status bookings are never candidates
    - Ranking: match type (exact > fuzzy > partial), phone agreement, similarity,
      then most recent class date

Design Decisions:
    - Thresholds are parameters, not module constants: the shell passes the
      configured values so the auditor and intake agree on what "fuzzy" means
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from studio_sales.core.domain_types import (
    BookingStatus, EXCLUDED_BOOKING_STATUSES, MatchType,
)
from studio_sales.core.names import (
    normalize_name, phonetically_equal, shares_token, similarity,
)
from studio_sales.core.phone import normalize_phone
from studio_sales.core.repository_protocols import BookingLike

DEFAULT_FUZZY_THRESHOLD = 0.85
DEFAULT_PARTIAL_THRESHOLD = 0.6
MIN_QUERY_LENGTH = 2

_MATCH_RANK = {MatchType.EXACT: 0, MatchType.FUZZY: 1, MatchType.PARTIAL: 2}

_STATUS_WARNINGS = {
    BookingStatus.ACTIVE.value: "This client has an active intro scheduled",
    BookingStatus.SECOND_INTRO_SCHEDULED.value: "This client is scheduled for a 2nd intro",
    BookingStatus.NOT_INTERESTED.value: "This client was previously marked as not interested",
    BookingStatus.CLOSED_PURCHASED.value: "This client already purchased a membership",
    BookingStatus.CANCELLED.value: "This client previously cancelled an intro",
}


@dataclass(frozen=True)
class RankedMatch:
    booking_id: UUID
    client_name: str
    class_date: date
    status: str
    booked_by: str | None
    match_type: MatchType
    similarity: float
    phone_match: bool
    warning: str

    def sort_key(self) -> tuple:
        return (
            _MATCH_RANK[self.match_type],
            not self.phone_match,
            -self.similarity,
            -self.class_date.toordinal(),
        )


def classify_match(
    query: str,
    candidate: str,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    partial_threshold: float = DEFAULT_PARTIAL_THRESHOLD,
) -> tuple[MatchType | None, float]:
    """Classify one name pair. Returns (match type or None, similarity)."""
    a, b = normalize_name(query), normalize_name(candidate)
    if not a or not b:
        return None, 0.0
    if a == b:
        return MatchType.EXACT, 1.0
    score = similarity(a, b)
    if score >= fuzzy_threshold or phonetically_equal(a, b):
        return MatchType.FUZZY, score
    if (
        score >= partial_threshold
        or shares_token(a, b)
        or (len(a) >= 3 and a in b)
        or (len(b) >= 3 and b in a)
    ):
        return MatchType.PARTIAL, score
    return None, score


def is_candidate(booking: BookingLike) -> bool:
    return (
        booking.deleted_at is None
        and booking.status not in {s.value for s in EXCLUDED_BOOKING_STATUSES}
    )


def build_warning(booking: BookingLike, match_type: MatchType, phone_match: bool) -> str:
    """Human-readable explanation of why a booking was matched."""
    basis = {
        MatchType.EXACT: "Same name as",
        MatchType.FUZZY: "Similar name to",
        MatchType.PARTIAL: "Partial name match with",
    }[match_type]
    parts = [
        f'{basis} "{booking.client_name}" booked for '
        f"{booking.class_date.isoformat()}"
    ]
    if phone_match:
        parts.append("same phone number")
    status_note = _STATUS_WARNINGS.get(booking.status)
    if status_note:
        parts.append(status_note)
    return ". ".join(parts)


def rank_candidates(
    name: str,
    phone: str | None,
    candidates: "list[BookingLike]",
    limit: int = 5,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    partial_threshold: float = DEFAULT_PARTIAL_THRESHOLD,
) -> list[RankedMatch]:
    """Rank candidate bookings against a name (and optional phone)."""
    if not name or len(name.strip()) < MIN_QUERY_LENGTH:
        return []
    query_phone = normalize_phone(phone)
    matches: list[RankedMatch] = []

    for booking in candidates:
        if not is_candidate(booking):
            continue
        match_type, score = classify_match(
            name, booking.client_name, fuzzy_threshold, partial_threshold,
        )
        phone_match = bool(query_phone) and normalize_phone(booking.phone) == query_phone
        if match_type is None and phone_match:
            match_type = MatchType.PARTIAL
        if match_type is None:
            continue
        matches.append(RankedMatch(
            booking_id=booking.id,
            client_name=booking.client_name,
            class_date=booking.class_date,
            status=booking.status,
            booked_by=booking.booked_by,
            match_type=match_type,
            similarity=round(score, 3),
            phone_match=phone_match,
            warning=build_warning(booking, match_type, phone_match),
        ))

    matches.sort(key=RankedMatch.sort_key)
    return matches[:limit]


def find_duplicate_pairs(
    bookings: "list[BookingLike]",
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> list[tuple[BookingLike, BookingLike, MatchType]]:
    """Pairs of live bookings that look like the same client (exact or fuzzy).

    Each pair is (earlier, later) by class date then creation time. Bookings
    linked to each other as 2nd intros are not duplicates of one another.
    """
    live = sorted(
        (b for b in bookings if is_candidate(b)),
        key=lambda b: (b.class_date, b.created_at),
    )
    pairs = []
    for i, first in enumerate(live):
        for second in live[i + 1:]:
            if getattr(second, "originating_booking_id", None) == first.id:
                continue
            match_type, _ = classify_match(
                first.client_name, second.client_name, fuzzy_threshold,
            )
            if match_type in (MatchType.EXACT, MatchType.FUZZY):
                pairs.append((first, second, match_type))
    return pairs
