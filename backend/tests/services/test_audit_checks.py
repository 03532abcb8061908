"""Audit Checks & Fixes: tests for individual integrity queries and their repairs.

Tests cover:
    - missing_booked_by skips self-booked lead sources, proposes a staff owner
    - malformed_phone proposes the canonical form; unparseable numbers are manual
    - commission_mismatch recomputes via the commission rules and the fix rewrites it
    - outcome_status_sync closes bookings whose run was sold
    - orphaned_follow_ups: purchased -> auto fix, deleted booking -> manual
    - missing_ledger_entry backfills through the classifier (idempotent) and skips
      runs on duplicate or soft-deleted bookings
    - duplicate_ledger_entries keeps the first row, lists the rest
    - referral_status_sync qualifies referrals once both clients bought
    - possible_duplicate_bookings flags the later booking of a pair
    - missing_coach ignores future classes
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from studio_sales.core.names import client_key
from studio_sales.models.follow_up_item import FollowUpQueueItem
from studio_sales.models.intro_run import IntroRun
from studio_sales.models.ledger_entry import MonthlyCountEntry
from studio_sales.models.outside_sale import OutsideSale
from studio_sales.models.referral import Referral
from studio_sales.services import audit_checks as checks
from studio_sales.services import audit_fixes as fixes

TODAY = date.today()


@pytest.fixture
def cfg(settings):
    return checks.AuditConfig.from_settings(settings)


async def _add(db, *rows):
    db.add_all(rows)
    await db.commit()
    return rows[0] if len(rows) == 1 else rows


# ─── Booking attribution ─────────────────────────────────────────

async def test_missing_booked_by_respects_self_booked_sources(test_db, seed_booking, cfg):
    staffed = await seed_booking("Ann Lee", booked_by=None, intro_owner="Mike")
    await seed_booking("Bo Chan", booked_by="", intro_owner=None, lead_source="Online Intro Offer")

    findings = await checks.find_missing_booked_by(test_db, cfg)
    assert findings.violation_ids == (str(staffed.id),)
    assert findings.proposed_fixes[0].suggested_value == "Mike"

    assert await fixes.fix_missing_booked_by(test_db, cfg) == 1
    await test_db.commit()
    await test_db.refresh(staffed)
    assert staffed.booked_by == "Mike"


async def test_missing_coach_ignores_future_classes(test_db, seed_booking, cfg):
    past = await seed_booking("Ann Lee", coach_name=None)
    await seed_booking("Bo Chan", coach_name=None, class_date=TODAY + timedelta(days=3))
    findings = await checks.find_missing_coach(test_db, cfg)
    assert findings.violation_ids == (str(past.id),)
    assert findings.proposed_fixes == ()


# ─── Phones ──────────────────────────────────────────────────────

async def test_malformed_phones(test_db, seed_booking, cfg):
    fixable = await seed_booking("Ann Lee", phone="(205) 555-9876")
    broken = await seed_booking("Bo Chan", phone="call front desk")

    findings = await checks.find_malformed_phones(test_db, cfg)
    assert set(findings.violation_ids) == {str(fixable.id), str(broken.id)}
    assert [f.suggested_value for f in findings.proposed_fixes] == ["2055559876"]
    assert [f.record_id for f in findings.manual_fixes] == [str(broken.id)]

    assert await fixes.fix_malformed_phones(test_db, cfg) == 1
    await test_db.commit()
    await test_db.refresh(fixable)
    assert fixable.phone == "2055559876"


# ─── Commission ──────────────────────────────────────────────────

async def test_commission_mismatch_detected_and_fixed(test_db, seed_booking, cfg):
    booking = await seed_booking()
    run = await _add(test_db, IntroRun(
        booking_id=booking.id, client_name="John Smith", run_date=TODAY,
        result="ELITE", tier="Elite + OTbeat", sale_kind="new",
        commission_amount=Decimal("6.00"),
    ))
    await _add(test_db, OutsideSale(
        client_name="Walk In", client_key="walk in", date_closed=TODAY,
        tier="Premier", sale_kind="upgrade", previous_tier="Elite",
        commission_amount=Decimal("1.50"),
    ))

    findings = await checks.find_commission_mismatches(test_db, cfg)
    assert findings.violation_ids == (f"intro_run:{run.id}",)
    assert findings.proposed_fixes[0].suggested_value == "12.00"

    assert await fixes.fix_commission_mismatches(test_db, cfg) == 1
    await test_db.commit()
    await test_db.refresh(run)
    assert run.commission_amount == Decimal("12.00")


async def test_unknown_tier_without_amount_is_manual(test_db, cfg):
    sale = await _add(test_db, OutsideSale(
        client_name="Walk In", client_key="walk in", date_closed=TODAY,
        tier="Founders Special", sale_kind="new", commission_amount=None,
    ))
    findings = await checks.find_commission_mismatches(test_db, cfg)
    assert findings.proposed_fixes == ()
    assert findings.manual_fixes[0].record_id == f"outside_sale:{sale.id}"


# ─── Outcomes ────────────────────────────────────────────────────

async def test_sold_run_syncs_booking_status(test_db, seed_booking, cfg):
    booking = await seed_booking()
    await _add(test_db, IntroRun(
        booking_id=booking.id, client_name="John Smith", run_date=TODAY,
        result="PREMIER", tier="Premier", commission_amount=Decimal("7.50"),
    ))
    findings = await checks.find_unsynced_outcomes(test_db, cfg)
    assert findings.violation_ids == (str(booking.id),)

    assert await fixes.fix_unsynced_outcomes(test_db, cfg) == 1
    await test_db.commit()
    await test_db.refresh(booking)
    assert booking.status == "closed_purchased"
    assert (await checks.find_unsynced_outcomes(test_db, cfg)).count == 0


# ─── Follow-up queue ─────────────────────────────────────────────

def _make_item(booking_id, name: str) -> FollowUpQueueItem:
    return FollowUpQueueItem(
        booking_id=booking_id, person_name=name, person_key=client_key(name),
        person_type="didnt_buy", touch_number=1, trigger_date=TODAY,
        scheduled_date=TODAY, status="pending",
    )


async def test_orphaned_follow_ups(test_db, seed_booking, cfg):
    bought = await seed_booking("Ann Lee", status="closed_purchased")
    deleted = await seed_booking("Bo Chan", status="deleted")
    live = await seed_booking("Cy Park")
    await _add(
        test_db,
        _make_item(bought.id, "Ann Lee"),
        _make_item(deleted.id, "Bo Chan"),
        _make_item(live.id, "Cy Park"),
    )

    findings = await checks.find_orphaned_follow_ups(test_db, cfg)
    assert findings.count == 2
    assert [f.name for f in findings.proposed_fixes] == ["Ann Lee"]
    assert [f.name for f in findings.manual_fixes] == ["Bo Chan"]

    assert await fixes.fix_orphaned_follow_ups(test_db, cfg) == 1
    await test_db.commit()
    statuses = dict((await test_db.execute(
        select(FollowUpQueueItem.person_name, FollowUpQueueItem.status),
    )).all())
    assert statuses == {"Ann Lee": "converted", "Bo Chan": "pending", "Cy Park": "pending"}


# ─── Ledger ──────────────────────────────────────────────────────

async def test_missing_ledger_entry_backfilled_once(test_db, cfg):
    await _add(test_db, OutsideSale(
        client_name="Walk In", client_key="walk in", date_closed=TODAY,
        tier="Basic", sale_kind="new", commission_amount=Decimal("0.00"),
    ))
    assert (await checks.find_missing_ledger_entries(test_db, cfg)).count == 1

    assert await fixes.fix_missing_ledger_entries(test_db, cfg) == 1
    await test_db.commit()
    assert await fixes.fix_missing_ledger_entries(test_db, cfg) == 0
    count = (await test_db.execute(select(func.count(MonthlyCountEntry.id)))).scalar_one()
    assert count == 1


async def test_missing_ledger_entry_ignores_excluded_bookings(test_db, seed_booking, cfg):
    duplicate = await seed_booking("Ann Lee", status="duplicate")
    deleted = await seed_booking("Bo Chan", deleted_at=datetime.now(timezone.utc))
    live = await seed_booking("Cy Park")
    await _add(test_db, *[
        IntroRun(
            booking_id=b.id, client_name=b.client_name, run_date=TODAY,
            result="ELITE", tier="Elite", commission_amount=Decimal("6.00"),
        )
        for b in (duplicate, deleted, live)
    ])

    findings = await checks.find_missing_ledger_entries(test_db, cfg)
    assert findings.violation_names == ("Cy Park",)

    assert await fixes.fix_missing_ledger_entries(test_db, cfg) == 1
    await test_db.commit()
    names = (await test_db.execute(select(MonthlyCountEntry.client_name))).scalars().all()
    assert names == ["Cy Park"]


async def test_duplicate_ledger_entries_keep_first(test_db, cfg):
    first = MonthlyCountEntry(
        client_name="Ann Lee", client_key="ann lee", event_date=TODAY,
        reason="new_membership", count_value=1,
    )
    await _add(test_db, first)
    second = await _add(test_db, MonthlyCountEntry(
        client_name="Ann Lee", client_key="ann lee", event_date=TODAY,
        reason="reactivation", count_value=2,
    ))
    findings = await checks.find_duplicate_ledger_entries(test_db, cfg)
    assert findings.violation_ids == (str(second.id),)
    assert findings.proposed_fixes == ()


# ─── Referrals ───────────────────────────────────────────────────

async def test_referral_qualifies_when_both_bought(test_db, seed_booking, cfg):
    referrer = await seed_booking("Ann Lee", status="closed_purchased")
    referred = await seed_booking("Bo Chan", status="closed_purchased")
    pending = await seed_booking("Cy Park")
    qualifying = await _add(test_db, Referral(
        referrer_booking_id=referrer.id, referred_booking_id=referred.id,
        referrer_name="Ann Lee", referred_name="Bo Chan",
    ))
    await _add(test_db, Referral(
        referrer_booking_id=referrer.id, referred_booking_id=pending.id,
        referrer_name="Ann Lee", referred_name="Cy Park",
    ))

    findings = await checks.find_unqualified_referrals(test_db, cfg)
    assert findings.violation_ids == (str(qualifying.id),)
    assert await fixes.fix_unqualified_referrals(test_db, cfg) == 1
    await test_db.commit()
    await test_db.refresh(qualifying)
    assert qualifying.status == "qualified"
    assert qualifying.qualified_at is not None


# ─── Duplicates ──────────────────────────────────────────────────

async def test_possible_duplicate_flags_later_booking(test_db, seed_booking, cfg):
    await seed_booking("John Smith", class_date=TODAY - timedelta(days=20))
    later = await seed_booking("Jon Smyth", class_date=TODAY - timedelta(days=1))
    await seed_booking("Alice Walker")

    findings = await checks.find_possible_duplicate_bookings(test_db, cfg)
    assert findings.violation_ids == (str(later.id),)
    assert findings.manual_fixes[0].suggested_value == "duplicate"
    assert "fuzzy match with John Smith" in findings.manual_fixes[0].name
