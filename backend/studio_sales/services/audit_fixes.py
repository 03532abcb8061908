"""Audit Fixes: automated remediation for checks whose correct value is derivable.

Invariants:
    - Each fix re-runs its check and applies only that check's proposed_fixes
    - Fixes never touch a locked intro owner
    - Fixes flush but do not commit: the auditor commits or rolls back per check
    - Every fix returns the number of records it changed

Design Decisions:
    - Re-running the check instead of trusting a stale snapshot: a fix applied
      minutes after the audit still writes only values valid right now
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.core.domain_types import (
    BookingStatus, EventKind, FollowUpStatus, ReferralStatus,
)
from studio_sales.models.booking import Booking
from studio_sales.models.follow_up_item import FollowUpQueueItem
from studio_sales.models.referral import Referral
from studio_sales.services import audit_checks as checks
from studio_sales.services import ledger as ledger_service

AUDIT_ACTOR = "Data Audit"


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _rewrite_booking_field(
    db: AsyncSession, findings, field: str, reason: str,
) -> int:
    fixed = 0
    for fix in findings.proposed_fixes:
        booking = await db.get(Booking, UUID(fix.record_id))
        if booking is None:
            continue
        if field == "intro_owner" and booking.intro_owner_locked:
            continue
        setattr(booking, field, fix.suggested_value)
        booking.last_edited_at = _now()
        booking.last_edited_by = AUDIT_ACTOR
        booking.edit_reason = reason
        fixed += 1
    await db.flush()
    return fixed


async def fix_misattributed_owners(db: AsyncSession, cfg: checks.AuditConfig) -> int:
    findings = await checks.find_misattributed_owners(db, cfg)
    return await _rewrite_booking_field(
        db, findings, "intro_owner", "Audit: intro owner reset to booking staff",
    )


async def fix_missing_booked_by(db: AsyncSession, cfg: checks.AuditConfig) -> int:
    findings = await checks.find_missing_booked_by(db, cfg)
    return await _rewrite_booking_field(
        db, findings, "booked_by", "Audit: booked_by copied from intro owner",
    )


async def fix_malformed_phones(db: AsyncSession, cfg: checks.AuditConfig) -> int:
    findings = await checks.find_malformed_phones(db, cfg)
    return await _rewrite_booking_field(
        db, findings, "phone", "Audit: phone normalized",
    )


async def fix_commission_mismatches(db: AsyncSession, cfg: checks.AuditConfig) -> int:
    findings = await checks.find_commission_mismatches(db, cfg)
    fixed = 0
    for fix in findings.proposed_fixes:
        model, record_id = checks.parse_sale_ref(fix.record_id)
        record = await db.get(model, record_id)
        if record is None:
            continue
        record.commission_amount = Decimal(fix.suggested_value)
        record.last_edited_at = _now()
        record.last_edited_by = AUDIT_ACTOR
        fixed += 1
    await db.flush()
    return fixed


async def fix_unsynced_outcomes(db: AsyncSession, cfg: checks.AuditConfig) -> int:
    findings = await checks.find_unsynced_outcomes(db, cfg)
    fixed = 0
    for fix in findings.proposed_fixes:
        booking = await db.get(Booking, UUID(fix.record_id))
        if booking is None:
            continue
        booking.status = BookingStatus.CLOSED_PURCHASED.value
        booking.closed_at = booking.closed_at or _now()
        booking.last_edited_at = _now()
        booking.last_edited_by = AUDIT_ACTOR
        booking.edit_reason = "Audit: status synced from sold run"
        fixed += 1
    await db.flush()
    return fixed


async def fix_orphaned_follow_ups(db: AsyncSession, cfg: checks.AuditConfig) -> int:
    findings = await checks.find_orphaned_follow_ups(db, cfg)
    fixed = 0
    for fix in findings.proposed_fixes:
        item = await db.get(FollowUpQueueItem, UUID(fix.record_id))
        if item is None:
            continue
        item.status = FollowUpStatus.CONVERTED.value
        item.converted_at = item.converted_at or _now()
        fixed += 1
    await db.flush()
    return fixed


async def fix_missing_ledger_entries(db: AsyncSession, cfg: checks.AuditConfig) -> int:
    """Insert ledger rows through the classifier, so reruns stay idempotent."""
    findings = await checks.find_missing_ledger_entries(db, cfg)
    fixed = 0
    for fix in findings.proposed_fixes:
        model, record_id = checks.parse_sale_ref(fix.record_id)
        record = await db.get(model, record_id)
        if record is None:
            continue
        decision = await ledger_service.classify(
            db, EventKind.NEW, record.client_name, checks.sale_event_date(record),
        )
        entry = await ledger_service.record_ledger_event(
            db, decision, record.client_name,
            sale_record_id=record.id,
            created_by=AUDIT_ACTOR,
            note="Backfilled by data audit",
            baseline=cfg.ledger_baseline,
        )
        if entry is not None:
            fixed += 1
    return fixed


async def fix_unqualified_referrals(db: AsyncSession, cfg: checks.AuditConfig) -> int:
    findings = await checks.find_unqualified_referrals(db, cfg)
    fixed = 0
    for fix in findings.proposed_fixes:
        referral = await db.get(Referral, UUID(fix.record_id))
        if referral is None:
            continue
        referral.status = ReferralStatus.QUALIFIED.value
        referral.qualified_at = referral.qualified_at or _now()
        fixed += 1
    await db.flush()
    return fixed
