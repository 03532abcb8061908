"""Follow-Up Cadence: pure scheduling of re-contact touches.

Invariants:
    - Touch numbers start at 1 and follow the cadence order
    - scheduled_date = trigger_date + offset days
    - A pending touch whose scheduled date is before today is overdue
"""

from dataclasses import dataclass
from datetime import date, timedelta

from studio_sales.core.domain_types import FollowUpPersonType, FollowUpStatus

NO_SHOW_CADENCE = (0, 5, 12)
DIDNT_BUY_CADENCE = (0, 6, 13)


@dataclass(frozen=True)
class PlannedTouch:
    touch_number: int
    scheduled_date: date


def cadence_for(
    person_type: FollowUpPersonType,
    no_show_cadence: "tuple[int, ...] | list[int]" = NO_SHOW_CADENCE,
    didnt_buy_cadence: "tuple[int, ...] | list[int]" = DIDNT_BUY_CADENCE,
) -> tuple[int, ...]:
    if person_type == FollowUpPersonType.NO_SHOW:
        return tuple(no_show_cadence)
    return tuple(didnt_buy_cadence)


def plan_touches(trigger_date: date, cadence: "tuple[int, ...]") -> list[PlannedTouch]:
    return [
        PlannedTouch(touch_number=i + 1, scheduled_date=trigger_date + timedelta(days=offset))
        for i, offset in enumerate(cadence)
    ]


def is_overdue(status: str, scheduled_date: date, today: date) -> bool:
    return status == FollowUpStatus.PENDING.value and scheduled_date < today
