"""Commission Rules: pure (tier, event) -> commission evaluation.

Invariants:
    - All functions are PURE: identical input always yields identical output
    - New: fixed amount from TIER_COMMISSION
    - AddOn(from): commission(OTbeat variant of from) - commission(from)
    - Upgrade(from): commission(to) - commission(from), floored at 0; a downgrade is
      flagged as an anomaly, never an error
    - Unknown tier: 0 plus a "manual entry needed" warning, never an exception

Design Decisions:
    - Decimal quantized to cents: stored and recomputed values compare exactly
    - Warnings returned on the quote instead of raised: the reconciler surfaces them
      and the auditor can recompute without try/except
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal

from studio_sales.core.domain_types import (
    AddOn, EventKind, MembershipTier, NewMembership, SaleEventType, Upgrade,
)

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

TIER_COMMISSION: dict[MembershipTier, Decimal] = {
    MembershipTier.PREMIER_OTBEAT: Decimal("15.00"),
    MembershipTier.PREMIER: Decimal("7.50"),
    MembershipTier.ELITE_OTBEAT: Decimal("12.00"),
    MembershipTier.ELITE: Decimal("6.00"),
    MembershipTier.BASIC_OTBEAT: Decimal("3.00"),
    MembershipTier.BASIC: Decimal("0.00"),
}

_OTBEAT_VARIANT: dict[MembershipTier, MembershipTier] = {
    MembershipTier.PREMIER: MembershipTier.PREMIER_OTBEAT,
    MembershipTier.ELITE: MembershipTier.ELITE_OTBEAT,
    MembershipTier.BASIC: MembershipTier.BASIC_OTBEAT,
}

_BASE_TIER: dict[MembershipTier, MembershipTier] = {
    v: k for k, v in _OTBEAT_VARIANT.items()
}

MANUAL_ENTRY_WARNING = "Unrecognized membership tier: commission needs manual entry"


@dataclass(frozen=True)
class CommissionQuote:
    """Result of evaluating one (tier, event) pair."""
    amount: Decimal
    tier: MembershipTier
    event_kind: EventKind
    warnings: tuple[str, ...] = field(default_factory=tuple)
    anomaly: str | None = None

    @property
    def needs_manual_entry(self) -> bool:
        return MANUAL_ENTRY_WARNING in self.warnings


def parse_tier(value: "str | MembershipTier | None") -> MembershipTier:
    """Map a free-form tier string onto the closed enumeration.

    Accepts the stored labels and the common variants staff type
    ("Elite + OTBeat", "elite+otbeat", "Premier w/ HRM"). Anything else is UNKNOWN.
    """
    if isinstance(value, MembershipTier):
        return value
    if not value:
        return MembershipTier.UNKNOWN
    text = re.sub(r"\s+", " ", value.strip().lower())
    has_hrm = "otbeat" in text or "hrm" in text or "heart rate" in text
    for base, name in (
        (MembershipTier.PREMIER, "premier"),
        (MembershipTier.ELITE, "elite"),
        (MembershipTier.BASIC, "basic"),
    ):
        if name in text:
            return _OTBEAT_VARIANT[base] if has_hrm else base
    return MembershipTier.UNKNOWN


def otbeat_variant(tier: MembershipTier) -> MembershipTier:
    """Tier with the heart-rate-monitor add-on. OTbeat tiers map to themselves."""
    if tier in _BASE_TIER:
        return tier
    return _OTBEAT_VARIANT.get(tier, MembershipTier.UNKNOWN)


def base_commission(tier: MembershipTier) -> Decimal | None:
    """Fixed commission for a tier, None when the tier is unknown."""
    return TIER_COMMISSION.get(tier)


def evaluate_commission(
    tier: "str | MembershipTier | None", event: SaleEventType,
) -> CommissionQuote:
    """Evaluate commission for one sale event. Pure, never raises."""
    to_tier = parse_tier(tier)

    if isinstance(event, AddOn):
        return _evaluate_add_on(event.from_tier)
    if isinstance(event, Upgrade):
        return _evaluate_upgrade(to_tier, event.from_tier)
    return _evaluate_new(to_tier)


def _evaluate_new(tier: MembershipTier) -> CommissionQuote:
    amount = base_commission(tier)
    if amount is None:
        return CommissionQuote(
            ZERO, tier, EventKind.NEW, warnings=(MANUAL_ENTRY_WARNING,),
        )
    return CommissionQuote(amount.quantize(CENTS), tier, EventKind.NEW)


def _evaluate_add_on(from_tier: MembershipTier) -> CommissionQuote:
    with_addon = otbeat_variant(from_tier)
    before = base_commission(from_tier)
    after = base_commission(with_addon)
    if before is None or after is None:
        return CommissionQuote(
            ZERO, with_addon, EventKind.ADD_ON, warnings=(MANUAL_ENTRY_WARNING,),
        )
    anomaly = None
    if with_addon == from_tier:
        anomaly = f"{from_tier.value} already includes the heart-rate monitor"
    return CommissionQuote(
        (after - before).quantize(CENTS), with_addon, EventKind.ADD_ON,
        anomaly=anomaly,
    )


def _evaluate_upgrade(
    to_tier: MembershipTier, from_tier: MembershipTier,
) -> CommissionQuote:
    after = base_commission(to_tier)
    before = base_commission(from_tier)
    if after is None or before is None:
        return CommissionQuote(
            ZERO, to_tier, EventKind.UPGRADE, warnings=(MANUAL_ENTRY_WARNING,),
        )
    delta = after - before
    if delta < 0:
        return CommissionQuote(
            ZERO, to_tier, EventKind.UPGRADE,
            anomaly=(
                f"Downgrade {from_tier.value} -> {to_tier.value}: "
                f"commission floored at 0 (delta {delta.quantize(CENTS)})"
            ),
        )
    return CommissionQuote(delta.quantize(CENTS), to_tier, EventKind.UPGRADE)


def build_event(
    kind: "EventKind | str", previous_tier: "str | MembershipTier | None" = None,
) -> SaleEventType:
    """Build the tagged event from a kind tag plus optional previous tier."""
    kind = EventKind(kind)
    if kind == EventKind.UPGRADE:
        return Upgrade(parse_tier(previous_tier))
    if kind == EventKind.ADD_ON:
        return AddOn(parse_tier(previous_tier))
    return NewMembership()


def resolve_commission(
    tier: "str | MembershipTier | None",
    event_kind: "EventKind | str",
    previous_tier: "str | MembershipTier | None" = None,
) -> Decimal:
    """Commission amount for (tier, event type). Convenience over evaluate_commission."""
    return evaluate_commission(tier, build_event(event_kind, previous_tier)).amount
