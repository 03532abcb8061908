"""Eligibility Classifier: tests for monthly-count ledger decisions.

Tests cover:
    - New membership eligible with reason new_membership
    - Caller-flagged reactivation eligible with reason reactivation
    - Upgrade and add-on never eligible
    - Already-recorded key is eligible but not inserted again
    - Running count increments from the latest value or baseline
"""

from datetime import date

import pytest

from studio_sales.core.domain_types import EventKind, LedgerReason
from studio_sales.core.eligibility import (
    classify_ledger_event, is_ledger_eligible, ledger_key, ledger_reason,
    next_count_value,
)

DAY = date(2026, 3, 14)


def test_new_membership_is_eligible():
    decision = classify_ledger_event(EventKind.NEW, "John Smith", DAY)
    assert decision.eligible and decision.should_insert
    assert decision.reason == LedgerReason.NEW_MEMBERSHIP
    assert decision.key == ("john smith", DAY, "new_membership")


def test_flagged_reactivation_is_eligible():
    assert ledger_reason("new", is_reactivation=True) == LedgerReason.REACTIVATION


@pytest.mark.parametrize("kind", [EventKind.UPGRADE, EventKind.ADD_ON])
def test_upgrade_and_add_on_never_touch_ledger(kind):
    decision = classify_ledger_event(kind, "John Smith", DAY)
    assert not decision.eligible
    assert decision.reason is None
    assert not is_ledger_eligible(kind, "John Smith", DAY)


def test_existing_key_is_not_inserted_twice():
    existing = {ledger_key("john  SMITH", DAY, LedgerReason.NEW_MEMBERSHIP)}
    decision = classify_ledger_event("new", "John Smith", DAY, existing_keys=existing)
    assert decision.eligible
    assert decision.already_recorded
    assert not decision.should_insert


def test_empty_client_name_is_ineligible():
    assert not is_ledger_eligible("new", "   ", DAY)


def test_next_count_value():
    assert next_count_value(None) == 1
    assert next_count_value(None, baseline=120) == 121
    assert next_count_value(41) == 42
