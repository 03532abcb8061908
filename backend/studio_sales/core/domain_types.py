"""Domain Types: closed enumerations and tagged sale events used across the codebase.

Invariants:
    - Membership tiers are a closed enumeration with an explicit UNKNOWN variant
    - Sale events are a tagged union {New, Upgrade(from), AddOn(from)}, never boolean flags
    - All valid states encoded as Enums, no raw string matching outside normalizers

Design Decisions:
    - str Enums: serialize to JSON and to String DB columns without custom encoders
    - Frozen dataclasses for events: hashable, safe to pass between pure functions
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


# ─── Enums ───────────────────────────────────────────────────────

class MembershipTier(str, Enum):
    """Sellable membership tiers. Values are the labels stored on sale records."""
    PREMIER_OTBEAT = "Premier + OTbeat"
    PREMIER = "Premier"
    ELITE_OTBEAT = "Elite + OTbeat"
    ELITE = "Elite"
    BASIC_OTBEAT = "Basic + OTbeat"
    BASIC = "Basic"
    UNKNOWN = "Unknown"


class EventKind(str, Enum):
    """Tag of a sale event."""
    NEW = "new"
    UPGRADE = "upgrade"
    ADD_ON = "add_on"


class BookingStatus(str, Enum):
    """Canonical booking lifecycle states, stored in `bookings.status`."""
    ACTIVE = "active"
    SECOND_INTRO_SCHEDULED = "second_intro_scheduled"
    NOT_INTERESTED = "not_interested"
    CLOSED_PURCHASED = "closed_purchased"
    CANCELLED = "cancelled"
    DUPLICATE = "duplicate"
    DELETED = "deleted"


# Excluded from metrics, attribution lookups and duplicate matching
EXCLUDED_BOOKING_STATUSES = frozenset({BookingStatus.DUPLICATE, BookingStatus.DELETED})


class IntroResult(str, Enum):
    """Canonical outcome of a trial class."""
    PREMIER = "PREMIER"
    ELITE = "ELITE"
    BASIC = "BASIC"
    NO_SHOW = "NO_SHOW"
    DIDNT_BUY = "DIDNT_BUY"
    NOT_INTERESTED = "NOT_INTERESTED"
    FOLLOW_UP_NEEDED = "FOLLOW_UP_NEEDED"
    SECOND_INTRO_SCHEDULED = "SECOND_INTRO_SCHEDULED"
    UNRESOLVED = "UNRESOLVED"


class FollowUpStatus(str, Enum):
    PENDING = "pending"
    OVERDUE = "overdue"
    CONVERTED = "converted"


OPEN_FOLLOW_UP_STATUSES = frozenset({FollowUpStatus.PENDING, FollowUpStatus.OVERDUE})


class FollowUpPersonType(str, Enum):
    NO_SHOW = "no_show"
    DIDNT_BUY = "didnt_buy"


class ReferralStatus(str, Enum):
    PENDING = "pending"
    QUALIFIED = "qualified"


class LedgerReason(str, Enum):
    """Why a monthly-count entry was created."""
    NEW_MEMBERSHIP = "new_membership"
    REACTIVATION = "reactivation"


class AttributionRule(str, Enum):
    """Which rule of the attribution fallback chain fired."""
    LOCKED_OWNER = "locked_intro_owner"
    INTRO_OWNER = "intro_owner"
    BOOKED_BY = "booked_by"
    RECENT_BOOKING = "recent_booking"
    ACTING_STAFF = "acting_staff"
    UNKNOWN = "unknown"


class MatchType(str, Enum):
    """Duplicate candidate strength, strongest first."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    PARTIAL = "partial"


class CheckStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class ReconcileState(str, Enum):
    """Reconciler state machine. Any state may fall to PARTIAL_FAILURE."""
    RECEIVED = "RECEIVED"
    RULE_EVALUATED = "RULE_EVALUATED"
    RUN_UPDATED = "RUN_UPDATED"
    BOOKING_SYNCED = "BOOKING_SYNCED"
    QUEUE_CLEARED = "QUEUE_CLEARED"
    LEDGER_UPDATED = "LEDGER_UPDATED"
    DONE = "DONE"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"


class StepStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"
    BLOCKED = "blocked"  # not attempted because an earlier step failed


# ─── Sale Events (tagged union) ──────────────────────────────────

@dataclass(frozen=True)
class NewMembership:
    """A brand-new membership (intro close, walk-in, follow-up conversion)."""

    @property
    def kind(self) -> EventKind:
        return EventKind.NEW


@dataclass(frozen=True)
class Upgrade:
    """Existing member moving from `from_tier` to a higher tier."""
    from_tier: MembershipTier

    @property
    def kind(self) -> EventKind:
        return EventKind.UPGRADE


@dataclass(frozen=True)
class AddOn:
    """Heart-rate-monitor add-on onto an existing `from_tier` membership."""
    from_tier: MembershipTier

    @property
    def kind(self) -> EventKind:
        return EventKind.ADD_ON


SaleEventType = Union[NewMembership, Upgrade, AddOn]
