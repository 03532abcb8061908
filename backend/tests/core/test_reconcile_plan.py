"""Reconcile Plan: tests for event validation and step bookkeeping.

Tests cover:
    - Missing tier, client name and previous tier are rejected with the field name
    - Intro-run vs outside-sale routing
    - After a failure, dependent steps are blocked and QUEUE_CLEARED still runs
    - Final state and last completed state
"""

from datetime import date
from uuid import uuid4

import pytest

from studio_sales.core.domain_types import EventKind, ReconcileState, StepStatus
from studio_sales.core.errors import SalesEventValidationError
from studio_sales.core.reconcile_plan import (
    SaleEvent, StepLedger, StepOutcome, syncs_booking, validate_event, writes_intro_run,
)


def _make_event(**overrides) -> SaleEvent:
    fields = {
        "client_name": "John Smith",
        "event_kind": EventKind.NEW,
        "tier": "Elite + OTbeat",
        "event_date": date(2026, 3, 14),
    }
    fields.update(overrides)
    return SaleEvent(**fields)


# ─── validate_event ──────────────────────────────────────────────

def test_valid_event_passes():
    validate_event(_make_event())


@pytest.mark.parametrize("tier", [None, "", "   "])
def test_missing_tier_rejected(tier):
    with pytest.raises(SalesEventValidationError) as exc:
        validate_event(_make_event(tier=tier))
    assert exc.value.field == "tier"
    assert exc.value.message == "No membership tier selected"
    assert exc.value.http_status == 400


def test_missing_client_name_rejected():
    with pytest.raises(SalesEventValidationError) as exc:
        validate_event(_make_event(client_name=" "))
    assert exc.value.field == "client_name"


@pytest.mark.parametrize("kind", [EventKind.UPGRADE, EventKind.ADD_ON])
def test_upgrade_and_add_on_need_previous_tier(kind):
    with pytest.raises(SalesEventValidationError) as exc:
        validate_event(_make_event(event_kind=kind))
    assert exc.value.field == "previous_tier"


def test_writes_intro_run_for_booked_new_memberships():
    assert writes_intro_run(_make_event(booking_id=uuid4()))
    assert not writes_intro_run(_make_event())
    assert not writes_intro_run(
        _make_event(booking_id=uuid4(), event_kind=EventKind.UPGRADE, previous_tier="Basic"),
    )


def test_supplied_run_id_always_writes_intro_run():
    event = _make_event(run_id=uuid4())
    assert writes_intro_run(event)
    assert not syncs_booking(event)
    assert syncs_booking(_make_event(booking_id=uuid4(), run_id=uuid4()))


# ─── StepLedger ──────────────────────────────────────────────────

def test_all_ok_is_done():
    ledger = StepLedger()
    ledger.record(StepOutcome(ReconcileState.RULE_EVALUATED, StepStatus.OK))
    ledger.record(StepOutcome(ReconcileState.RUN_UPDATED, StepStatus.OK))
    ledger.record(StepOutcome(ReconcileState.BOOKING_SYNCED, StepStatus.SKIPPED))
    assert ledger.final_state() == ReconcileState.DONE
    assert ledger.last_completed() == ReconcileState.BOOKING_SYNCED


def test_failure_blocks_dependents_but_not_queue():
    ledger = StepLedger()
    ledger.record(StepOutcome(ReconcileState.RULE_EVALUATED, StepStatus.OK))
    ledger.record(StepOutcome(ReconcileState.RUN_UPDATED, StepStatus.FAILED, "db down"))

    assert not ledger.should_run(ReconcileState.BOOKING_SYNCED)
    assert ledger.should_run(ReconcileState.QUEUE_CLEARED)
    assert not ledger.should_run(ReconcileState.LEDGER_UPDATED)

    blocked = ledger.blocked(ReconcileState.LEDGER_UPDATED)
    assert blocked.status == StepStatus.BLOCKED
    assert "RUN_UPDATED" in blocked.detail


def test_failure_is_partial_and_stops_last_completed():
    ledger = StepLedger()
    ledger.record(StepOutcome(ReconcileState.RULE_EVALUATED, StepStatus.OK))
    ledger.record(StepOutcome(ReconcileState.RUN_UPDATED, StepStatus.OK))
    ledger.record(StepOutcome(ReconcileState.BOOKING_SYNCED, StepStatus.FAILED))
    ledger.record(StepOutcome(ReconcileState.QUEUE_CLEARED, StepStatus.OK))
    assert ledger.final_state() == ReconcileState.PARTIAL_FAILURE
    assert ledger.last_completed() == ReconcileState.RUN_UPDATED


def test_step_outcome_to_dict():
    record_id = uuid4()
    data = StepOutcome(ReconcileState.RUN_UPDATED, StepStatus.OK, "Created", record_id).to_dict()
    assert data == {
        "step": "RUN_UPDATED", "status": "ok", "detail": "Created", "record_id": str(record_id),
    }
