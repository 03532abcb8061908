"""Outcome Status: normalizers for legacy booking statuses and intro results.

Invariants:
    - Every normalizer returns a canonical enum member, never raises
    - Unrecognized booking status -> ACTIVE; unrecognized result -> UNRESOLVED
    - A membership sale result always maps the booking to CLOSED_PURCHASED
"""

from studio_sales.core.domain_types import BookingStatus, IntroResult, MembershipTier

_STATUS_MAP = {
    "active": BookingStatus.ACTIVE,
    "unscheduled": BookingStatus.ACTIVE,
    "no show": BookingStatus.ACTIVE,
    "no-show": BookingStatus.ACTIVE,
    "no_show": BookingStatus.ACTIVE,
    "closed – didnt buy": BookingStatus.ACTIVE,
    "closed_didnt_buy": BookingStatus.ACTIVE,
    "closed – bought": BookingStatus.CLOSED_PURCHASED,
    "closed - bought": BookingStatus.CLOSED_PURCHASED,
    "closed bought": BookingStatus.CLOSED_PURCHASED,
    "closed_purchased": BookingStatus.CLOSED_PURCHASED,
    "not interested": BookingStatus.NOT_INTERESTED,
    "not_interested": BookingStatus.NOT_INTERESTED,
    "2nd intro scheduled": BookingStatus.SECOND_INTRO_SCHEDULED,
    "second_intro_scheduled": BookingStatus.SECOND_INTRO_SCHEDULED,
    "cancelled": BookingStatus.CANCELLED,
    "canceled": BookingStatus.CANCELLED,
    "duplicate": BookingStatus.DUPLICATE,
    "deleted": BookingStatus.DELETED,
    "deleted (soft)": BookingStatus.DELETED,
    "deleted_soft": BookingStatus.DELETED,
}

_RESULT_MAP = {
    "no-show": IntroResult.NO_SHOW,
    "no show": IntroResult.NO_SHOW,
    "no_show": IntroResult.NO_SHOW,
    "didn't buy": IntroResult.DIDNT_BUY,
    "didnt buy": IntroResult.DIDNT_BUY,
    "didnt_buy": IntroResult.DIDNT_BUY,
    "not interested": IntroResult.NOT_INTERESTED,
    "not_interested": IntroResult.NOT_INTERESTED,
    "follow-up needed": IntroResult.FOLLOW_UP_NEEDED,
    "follow_up_needed": IntroResult.FOLLOW_UP_NEEDED,
    "booked 2nd intro": IntroResult.SECOND_INTRO_SCHEDULED,
    "second_intro_scheduled": IntroResult.SECOND_INTRO_SCHEDULED,
    "unresolved": IntroResult.UNRESOLVED,
}

_SALE_RESULTS = frozenset({IntroResult.PREMIER, IntroResult.ELITE, IntroResult.BASIC})

_RESULT_TO_STATUS = {
    IntroResult.NOT_INTERESTED: BookingStatus.NOT_INTERESTED,
    IntroResult.SECOND_INTRO_SCHEDULED: BookingStatus.SECOND_INTRO_SCHEDULED,
}


def normalize_booking_status(value: str | None) -> BookingStatus:
    if not value:
        return BookingStatus.ACTIVE
    return _STATUS_MAP.get(value.strip().lower(), BookingStatus.ACTIVE)


def normalize_intro_result(value: str | None) -> IntroResult:
    """Legacy result strings and tier labels onto IntroResult."""
    if not value:
        return IntroResult.UNRESOLVED
    key = value.strip().lower()
    if key in _RESULT_MAP:
        return _RESULT_MAP[key]
    for result in (IntroResult.PREMIER, IntroResult.ELITE, IntroResult.BASIC):
        if result.value.lower() in key:
            return result
    return IntroResult.UNRESOLVED


def is_membership_sale(result: IntroResult) -> bool:
    return result in _SALE_RESULTS


def booking_status_for_result(result: IntroResult) -> BookingStatus:
    if is_membership_sale(result):
        return BookingStatus.CLOSED_PURCHASED
    return _RESULT_TO_STATUS.get(result, BookingStatus.ACTIVE)


def result_for_tier(tier: MembershipTier) -> IntroResult:
    """Sale result recorded on a run for a tier; UNRESOLVED for unknown tiers."""
    name = tier.value.split(" ")[0].upper()
    try:
        return IntroResult(name)
    except ValueError:
        return IntroResult.UNRESOLVED
