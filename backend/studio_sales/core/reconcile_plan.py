"""Reconcile Plan: pure validation and step bookkeeping for the outcome reconciler.

Invariants:
    - Validation runs before any write; a failing event raises SalesEventValidationError
    - Step order: RULE_EVALUATED -> RUN_UPDATED -> BOOKING_SYNCED -> QUEUE_CLEARED
      -> LEDGER_UPDATED
    - After a failed step every later dependent step is BLOCKED; QUEUE_CLEARED is
      independent (idempotent, touches unrelated rows) and still runs
    - Final state is DONE only when no step failed or was blocked, else PARTIAL_FAILURE

Design Decisions:
    - No rollback of committed steps: the auditor repairs the drift afterwards
"""

from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from studio_sales.core.domain_types import (
    EventKind, ReconcileState, StepStatus,
)
from studio_sales.core.errors import SalesEventValidationError

STEP_ORDER = (
    ReconcileState.RULE_EVALUATED,
    ReconcileState.RUN_UPDATED,
    ReconcileState.BOOKING_SYNCED,
    ReconcileState.QUEUE_CLEARED,
    ReconcileState.LEDGER_UPDATED,
)

INDEPENDENT_STEPS = frozenset({ReconcileState.QUEUE_CLEARED})


@dataclass(frozen=True)
class SaleEvent:
    """One sales event as submitted by a caller."""
    client_name: str
    event_kind: EventKind
    tier: str | None
    event_date: date
    acting_staff: str | None = None
    booking_id: UUID | None = None
    previous_tier: str | None = None
    run_id: UUID | None = None
    sale_record_id: UUID | None = None
    note: str | None = None
    is_reactivation: bool = False
    is_self_gen: bool = False
    lead_source: str | None = None


@dataclass(frozen=True)
class StepOutcome:
    step: ReconcileState
    status: StepStatus
    detail: str = ""
    record_id: UUID | None = None

    def to_dict(self) -> dict:
        return {
            "step": self.step.value,
            "status": self.status.value,
            "detail": self.detail,
            "record_id": str(self.record_id) if self.record_id else None,
        }


@dataclass
class StepLedger:
    """Accumulates per-step outcomes in order."""
    outcomes: list[StepOutcome] = field(default_factory=list)

    def record(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def failed(self) -> bool:
        return any(o.status == StepStatus.FAILED for o in self.outcomes)

    def should_run(self, step: ReconcileState) -> bool:
        return not self.failed or step in INDEPENDENT_STEPS

    def blocked(self, step: ReconcileState) -> StepOutcome:
        failed_step = next(o.step for o in self.outcomes if o.status == StepStatus.FAILED)
        return StepOutcome(step, StepStatus.BLOCKED, f"Not attempted: {failed_step.value} failed")

    def final_state(self) -> ReconcileState:
        if any(o.status in (StepStatus.FAILED, StepStatus.BLOCKED) for o in self.outcomes):
            return ReconcileState.PARTIAL_FAILURE
        return ReconcileState.DONE

    def last_completed(self) -> ReconcileState:
        """Furthest state reached without interruption."""
        state = ReconcileState.RECEIVED
        for outcome in self.outcomes:
            if outcome.status not in (StepStatus.OK, StepStatus.SKIPPED):
                break
            state = outcome.step
        return state


def validate_event(event: SaleEvent) -> None:
    """Reject events that cannot be reconciled. Raises before any write."""
    if not event.tier or not event.tier.strip():
        raise SalesEventValidationError("No membership tier selected", "tier")
    if not event.client_name or not event.client_name.strip():
        raise SalesEventValidationError("Client name is required", "client_name")
    if event.event_kind in (EventKind.UPGRADE, EventKind.ADD_ON):
        if not event.previous_tier or not event.previous_tier.strip():
            raise SalesEventValidationError(
                f"{event.event_kind.value} requires the member's current tier",
                "previous_tier",
            )


def writes_intro_run(event: SaleEvent) -> bool:
    """A supplied run id, or a new membership tied to a booking, lands on an IntroRun.

    Everything else lands on an OutsideSale.
    """
    if event.run_id is not None:
        return True
    return event.event_kind == EventKind.NEW and event.booking_id is not None


def syncs_booking(event: SaleEvent) -> bool:
    """Only a new membership with a known booking moves that booking to purchased."""
    return event.event_kind == EventKind.NEW and event.booking_id is not None
