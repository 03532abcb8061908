"""Audit Checks: read-only queries that find invariant violations.

Invariants:
    - Every check is read-only and independent: safe to run concurrently, each on
      its own session
    - Every check returns CheckFindings; status derivation happens in core/audit_rules.py
    - Queries are capped at AuditConfig.query_limit rows
    - proposed_fixes only hold values that are unambiguously derivable; everything
      else lands in manual_fixes

Design Decisions:
    - Sale records from both tables are referenced as "<kind>:<uuid>" so one fix
      routine can reload the right row
    - The possible-duplicates check delegates to core/matching.py, the same code
      intake uses
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import aliased
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.config import Settings
from studio_sales.core.audit_rules import CheckFindings, ManualFix
from studio_sales.core.commission import CENTS, build_event, evaluate_commission
from studio_sales.core.domain_types import (
    BookingStatus, EXCLUDED_BOOKING_STATUSES, EventKind, IntroResult,
    LedgerReason, OPEN_FOLLOW_UP_STATUSES, ReferralStatus,
)
from studio_sales.core.matching import DEFAULT_FUZZY_THRESHOLD, find_duplicate_pairs
from studio_sales.core.names import (
    client_key, is_staff_shaped, looks_like_client_name,
)
from studio_sales.core.phone import extract_phone, is_canonical_phone, normalize_phone
from studio_sales.models.booking import Booking
from studio_sales.models.follow_up_item import FollowUpQueueItem
from studio_sales.models.intro_run import IntroRun
from studio_sales.models.ledger_entry import MonthlyCountEntry
from studio_sales.models.outside_sale import OutsideSale
from studio_sales.models.referral import Referral
from studio_sales.services.booking_queries import live_bookings_query, recent_live_bookings

_SALE_RESULTS = [IntroResult.PREMIER.value, IntroResult.ELITE.value, IntroResult.BASIC.value]
_EXCLUDED = {s.value for s in EXCLUDED_BOOKING_STATUSES}
_OPEN = [s.value for s in OPEN_FOLLOW_UP_STATUSES]

SALE_MODELS = {"intro_run": IntroRun, "outside_sale": OutsideSale}


@dataclass(frozen=True)
class AuditConfig:
    staff_roster: frozenset[str] = frozenset()
    self_booked_lead_sources: frozenset[str] = frozenset()
    query_limit: int = 200
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    lookback_days: int = 365
    ledger_baseline: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuditConfig":
        return cls(
            staff_roster=frozenset(settings.studio_staff),
            self_booked_lead_sources=frozenset(settings.self_booked_lead_sources),
            query_limit=settings.audit_query_limit,
            fuzzy_threshold=settings.fuzzy_match_threshold,
            lookback_days=settings.duplicate_lookback_days,
            ledger_baseline=settings.ledger_baseline,
        )


# ─── Helpers ─────────────────────────────────────────────────────

def _blank(column):
    return or_(column.is_(None), func.trim(column) == "")


def sale_ref(record: "IntroRun | OutsideSale") -> str:
    kind = "intro_run" if isinstance(record, IntroRun) else "outside_sale"
    return f"{kind}:{record.id}"


def parse_sale_ref(ref: str) -> tuple[type, UUID]:
    kind, _, raw_id = ref.partition(":")
    return SALE_MODELS[kind], UUID(raw_id)


def _event_kind(value: str | None) -> EventKind:
    try:
        return EventKind(value or EventKind.NEW.value)
    except ValueError:
        return EventKind.NEW


def _findings(
    violations: "list[tuple[str, str]]",
    proposed: "list[ManualFix]" = (),
    manual: "list[ManualFix]" = (),
) -> CheckFindings:
    return CheckFindings(
        violation_ids=tuple(v[0] for v in violations),
        violation_names=tuple(v[1] for v in violations),
        proposed_fixes=tuple(proposed),
        manual_fixes=tuple(manual),
    )


async def _live_bookings(db: AsyncSession, cfg: AuditConfig, *conditions) -> list[Booking]:
    result = await db.execute(
        live_bookings_query()
        .where(*conditions)
        .order_by(Booking.class_date.desc())
        .limit(cfg.query_limit),
    )
    return list(result.scalars().all())


async def _sale_records(db: AsyncSession, cfg: AuditConfig, *conditions_by_model) -> list:
    records = []
    for model, conditions in conditions_by_model:
        result = await db.execute(
            select(model).where(*conditions).limit(cfg.query_limit),
        )
        records.extend(result.scalars().all())
    return records


# ─── Booking Attribution ─────────────────────────────────────────

async def find_misattributed_owners(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    """Unlocked intro_owner holding a client-name-shaped value."""
    rows = await _live_bookings(
        db, cfg,
        Booking.intro_owner.is_not(None),
        Booking.intro_owner_locked.is_(False),
    )
    names = await db.execute(
        select(Booking.client_name).where(Booking.deleted_at.is_(None)).distinct(),
    )
    client_names = frozenset(names.scalars().all())

    violations, proposed, manual = [], [], []
    for b in rows:
        if not looks_like_client_name(b.intro_owner, cfg.staff_roster, client_names):
            continue
        violations.append((str(b.id), b.client_name))
        if is_staff_shaped(b.booked_by, cfg.staff_roster):
            proposed.append(ManualFix(
                str(b.id), b.client_name, "intro_owner", b.intro_owner, b.booked_by.strip(),
            ))
        else:
            manual.append(ManualFix(str(b.id), b.client_name, "intro_owner", b.intro_owner))
    return _findings(violations, proposed, manual)


async def find_missing_booked_by(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    rows = await _live_bookings(db, cfg, _blank(Booking.booked_by))
    violations, proposed, manual = [], [], []
    for b in rows:
        if (b.lead_source or "").strip() in cfg.self_booked_lead_sources:
            continue
        violations.append((str(b.id), b.client_name))
        if is_staff_shaped(b.intro_owner, cfg.staff_roster):
            proposed.append(ManualFix(
                str(b.id), b.client_name, "booked_by", b.booked_by, b.intro_owner.strip(),
            ))
        else:
            manual.append(ManualFix(str(b.id), b.client_name, "booked_by", b.booked_by))
    return _findings(violations, proposed, manual)


async def find_missing_coach(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    """Intros already held without a coach recorded."""
    rows = await _live_bookings(
        db, cfg,
        _blank(Booking.coach_name),
        Booking.class_date <= date.today(),
        Booking.status != BookingStatus.CANCELLED.value,
    )
    violations = [(str(b.id), b.client_name) for b in rows]
    manual = [ManualFix(str(b.id), b.client_name, "coach_name") for b in rows]
    return _findings(violations, manual=manual)


async def find_missing_lead_source(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    rows = await _live_bookings(db, cfg, _blank(Booking.lead_source))
    violations = [(str(b.id), b.client_name) for b in rows]
    manual = [ManualFix(str(b.id), b.client_name, "lead_source") for b in rows]
    return _findings(violations, manual=manual)


# ─── Contact Data ────────────────────────────────────────────────

async def find_malformed_phones(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    rows = await _live_bookings(db, cfg, Booking.phone.is_not(None), func.trim(Booking.phone) != "")
    violations, proposed, manual = [], [], []
    for b in rows:
        if is_canonical_phone(b.phone):
            continue
        violations.append((str(b.id), b.client_name))
        canonical = normalize_phone(b.phone) or extract_phone(b.phone)
        if canonical:
            proposed.append(ManualFix(str(b.id), b.client_name, "phone", b.phone, canonical))
        else:
            manual.append(ManualFix(str(b.id), b.client_name, "phone", b.phone))
    return _findings(violations, proposed, manual)


# ─── Commission ──────────────────────────────────────────────────

async def find_commission_mismatches(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    """Stored commission disagrees with the evaluator's recomputation."""
    records = await _sale_records(
        db, cfg,
        (IntroRun, [IntroRun.tier.is_not(None)]),
        (OutsideSale, [OutsideSale.tier.is_not(None)]),
    )
    violations, proposed, manual = [], [], []
    for r in records:
        quote = evaluate_commission(r.tier, build_event(_event_kind(r.sale_kind), r.previous_tier))
        stored = r.commission_amount
        if quote.needs_manual_entry:
            if stored is None:
                violations.append((sale_ref(r), r.client_name))
                manual.append(ManualFix(sale_ref(r), r.client_name, "commission_amount"))
            continue
        if stored is not None and Decimal(stored).quantize(CENTS) == quote.amount:
            continue
        violations.append((sale_ref(r), r.client_name))
        proposed.append(ManualFix(
            sale_ref(r), r.client_name, "commission_amount",
            str(stored) if stored is not None else None, str(quote.amount),
        ))
    return _findings(violations, proposed, manual)


async def find_flagged_attributions(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    records = await _sale_records(
        db, cfg,
        (IntroRun, [IntroRun.attribution_flagged.is_(True)]),
        (OutsideSale, [OutsideSale.attribution_flagged.is_(True)]),
    )
    violations = [(sale_ref(r), r.client_name) for r in records]
    manual = [
        ManualFix(sale_ref(r), r.client_name, "intro_owner", r.intro_owner)
        for r in records
    ]
    return _findings(violations, manual=manual)


# ─── Outcomes ────────────────────────────────────────────────────

async def find_unsynced_outcomes(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    """Sold runs whose booking is not closed_purchased."""
    result = await db.execute(
        select(Booking)
        .join(IntroRun, IntroRun.booking_id == Booking.id)
        .where(
            IntroRun.result.in_(_SALE_RESULTS),
            Booking.deleted_at.is_(None),
            Booking.status.not_in(sorted(_EXCLUDED | {BookingStatus.CLOSED_PURCHASED.value})),
        )
        .distinct()
        .limit(cfg.query_limit),
    )
    rows = list(result.scalars().all())
    violations = [(str(b.id), b.client_name) for b in rows]
    proposed = [
        ManualFix(
            str(b.id), b.client_name, "status", b.status,
            BookingStatus.CLOSED_PURCHASED.value,
        )
        for b in rows
    ]
    return _findings(violations, proposed)


async def find_unlinked_runs(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    result = await db.execute(
        select(IntroRun).where(IntroRun.booking_id.is_(None)).limit(cfg.query_limit),
    )
    rows = list(result.scalars().all())
    violations = [(str(r.id), r.client_name) for r in rows]
    manual = [ManualFix(str(r.id), r.client_name, "booking_id") for r in rows]
    return _findings(violations, manual=manual)


# ─── Follow-Up Queue ─────────────────────────────────────────────

async def find_orphaned_follow_ups(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    """Open touches whose booking is gone, excluded, or already purchased."""
    result = await db.execute(
        select(FollowUpQueueItem, Booking)
        .outerjoin(Booking, FollowUpQueueItem.booking_id == Booking.id)
        .where(FollowUpQueueItem.status.in_(_OPEN))
        .limit(cfg.query_limit),
    )
    violations, proposed, manual = [], [], []
    for item, booking in result.all():
        if booking is None or booking.deleted_at is not None or booking.status in _EXCLUDED:
            violations.append((str(item.id), item.person_name))
            manual.append(ManualFix(str(item.id), item.person_name, "booking_id"))
        elif booking.status == BookingStatus.CLOSED_PURCHASED.value:
            violations.append((str(item.id), item.person_name))
            proposed.append(ManualFix(
                str(item.id), item.person_name, "status", item.status, "converted",
            ))
    return _findings(violations, proposed, manual)


# ─── Ledger ──────────────────────────────────────────────────────

def sale_event_date(record: "IntroRun | OutsideSale") -> date:
    if isinstance(record, IntroRun):
        return record.buy_date or record.run_date
    return record.date_closed


async def find_missing_ledger_entries(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    """New-membership sales with no ledger row for (client, date).

    Runs on a soft-deleted or duplicate booking do not count as memberships.
    """
    runs = await db.execute(
        select(IntroRun)
        .outerjoin(Booking, IntroRun.booking_id == Booking.id)
        .where(
            IntroRun.result.in_(_SALE_RESULTS),
            or_(IntroRun.sale_kind.is_(None), IntroRun.sale_kind == EventKind.NEW.value),
            or_(
                Booking.id.is_(None),
                and_(Booking.deleted_at.is_(None), Booking.status.not_in(sorted(_EXCLUDED))),
            ),
        )
        .limit(cfg.query_limit),
    )
    records = list(runs.scalars().all())
    records.extend(await _sale_records(
        db, cfg, (OutsideSale, [OutsideSale.sale_kind == EventKind.NEW.value]),
    ))
    if not records:
        return CheckFindings()
    keys = {client_key(r.client_name) for r in records}
    result = await db.execute(
        select(MonthlyCountEntry.client_key, MonthlyCountEntry.event_date)
        .where(MonthlyCountEntry.client_key.in_(keys)),
    )
    recorded = {tuple(row) for row in result.all()}

    violations, proposed = [], []
    for r in records:
        event_date = sale_event_date(r)
        if (client_key(r.client_name), event_date) in recorded:
            continue
        violations.append((sale_ref(r), r.client_name))
        proposed.append(ManualFix(
            sale_ref(r), r.client_name, "ledger", None,
            f"{LedgerReason.NEW_MEMBERSHIP.value} on {event_date.isoformat()}",
        ))
    return _findings(violations, proposed)


async def find_duplicate_ledger_entries(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    """More than one ledger row for the same client and date."""
    dupes = (
        select(MonthlyCountEntry.client_key, MonthlyCountEntry.event_date)
        .group_by(MonthlyCountEntry.client_key, MonthlyCountEntry.event_date)
        .having(func.count() > 1)
        .subquery()
    )
    result = await db.execute(
        select(MonthlyCountEntry)
        .join(dupes, and_(
            MonthlyCountEntry.client_key == dupes.c.client_key,
            MonthlyCountEntry.event_date == dupes.c.event_date,
        ))
        .order_by(
            MonthlyCountEntry.client_key,
            MonthlyCountEntry.event_date,
            MonthlyCountEntry.created_at,
        )
        .limit(cfg.query_limit),
    )
    seen: set[tuple[str, date]] = set()
    violations, manual = [], []
    for entry in result.scalars().all():
        key = (entry.client_key, entry.event_date)
        if key not in seen:
            seen.add(key)
            continue
        violations.append((str(entry.id), entry.client_name))
        manual.append(ManualFix(
            str(entry.id), entry.client_name, "id", entry.reason, "remove",
        ))
    return _findings(violations, manual=manual)


# ─── Referrals ───────────────────────────────────────────────────

async def find_unqualified_referrals(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    """Pending referrals where both clients have purchased."""
    referrer = aliased(Booking)
    referred = aliased(Booking)
    purchased = BookingStatus.CLOSED_PURCHASED.value
    result = await db.execute(
        select(Referral)
        .join(referrer, Referral.referrer_booking_id == referrer.id)
        .join(referred, Referral.referred_booking_id == referred.id)
        .where(
            Referral.status == ReferralStatus.PENDING.value,
            referrer.status == purchased,
            referred.status == purchased,
        )
        .limit(cfg.query_limit),
    )
    rows = list(result.scalars().all())
    violations = [(str(r.id), r.referred_name) for r in rows]
    proposed = [
        ManualFix(str(r.id), r.referred_name, "status", r.status, ReferralStatus.QUALIFIED.value)
        for r in rows
    ]
    return _findings(violations, proposed)


# ─── Duplicates ──────────────────────────────────────────────────

async def find_possible_duplicate_bookings(db: AsyncSession, cfg: AuditConfig) -> CheckFindings:
    bookings = await recent_live_bookings(db, date.today(), cfg.lookback_days)
    violations, manual = [], []
    flagged: set[UUID] = set()
    for earlier, later, match_type in find_duplicate_pairs(bookings, cfg.fuzzy_threshold):
        if later.id in flagged:
            continue
        flagged.add(later.id)
        violations.append((str(later.id), later.client_name))
        manual.append(ManualFix(
            str(later.id),
            f"{later.client_name} ({match_type.value} match with {earlier.client_name} "
            f"on {earlier.class_date.isoformat()})",
            "status", later.status, BookingStatus.DUPLICATE.value,
        ))
    return _findings(violations, manual=manual)
