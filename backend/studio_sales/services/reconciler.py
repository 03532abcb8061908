"""Outcome Reconciler: the canonical write path for one sales event.

Invariants:
    - Validation (tier, client name, previous tier) raises before any write, as does a
      booking that is missing, soft-deleted or marked duplicate
    - A supplied run id always keys the IntroRun update
    - Steps run sequentially, each committed on its own:
      RULE_EVALUATED -> RUN_UPDATED -> BOOKING_SYNCED -> QUEUE_CLEARED -> LEDGER_UPDATED
    - A failed step is rolled back, reported once with its step name and never retried;
      committed earlier steps stay committed
    - After a failure, dependent steps are BLOCKED; queue clearing still runs
    - Re-running the same event updates the same sale record and never adds a second
      ledger entry
    - Ambiguous attribution never blocks: the sale record is flagged for audit

Design Decisions:
    - Impure shell around core/commission.py, core/attribution.py, core/eligibility.py
      and core/reconcile_plan.py; every decision is made in core
    - No cross-step transaction: the auditor is the consistency backstop
    - ORM rows are re-read inside each step: a rollback expires loaded instances and
      async sessions cannot lazy-load them again
    - The outcome event log is best-effort: a failure there becomes a warning and
      never changes the final state
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.config import Settings, get_settings
from studio_sales.core.attribution import Attribution
from studio_sales.core.commission import (
    CommissionQuote, build_event, evaluate_commission, parse_tier,
)
from studio_sales.core.domain_types import (
    AttributionRule, BookingStatus, EventKind, MembershipTier,
    ReconcileState, StepStatus,
)
from studio_sales.core.errors import (
    ErrorContext, ResourceNotFoundError, SalesEventValidationError, StepWriteError,
    StudioSalesError,
)
from studio_sales.core.matching import is_candidate
from studio_sales.core.names import client_key
from studio_sales.core.outcome_status import result_for_tier
from studio_sales.core.reconcile_plan import (
    SaleEvent, StepLedger, StepOutcome, syncs_booking, validate_event, writes_intro_run,
)
from studio_sales.models.booking import Booking
from studio_sales.models.intro_run import IntroRun
from studio_sales.models.outcome_event import OutcomeEvent
from studio_sales.models.outside_sale import OutsideSale
from studio_sales.services import ledger as ledger_service
from studio_sales.services.attribution_service import resolve_attribution
from studio_sales.services.booking_queries import get_booking
from studio_sales.services.follow_ups import mark_converted

logger = logging.getLogger(__name__)


@dataclass
class _WriteContext:
    event: SaleEvent
    quote: CommissionQuote
    attribution: Attribution
    sale_record_id: UUID | None = None
    sale_record_type: str | None = None
    ledger_entry_id: UUID | None = None


@dataclass
class ReconcileResult:
    commission: CommissionQuote
    attribution: Attribution
    steps: list[StepOutcome]
    final_state: ReconcileState
    last_completed: ReconcileState
    warnings: list[dict] = field(default_factory=list)
    sale_record_id: UUID | None = None
    sale_record_type: str | None = None
    ledger_entry_id: UUID | None = None
    event_log_id: UUID | None = None

    def to_dict(self) -> dict:
        return {
            "commission": {
                "amount": str(self.commission.amount),
                "tier": self.commission.tier.value,
                "event_kind": self.commission.event_kind.value,
                "warnings": list(self.commission.warnings),
                "anomaly": self.commission.anomaly,
            },
            "attribution": self.attribution.to_dict(),
            "steps": [s.to_dict() for s in self.steps],
            "final_state": self.final_state.value,
            "last_completed": self.last_completed.value,
            "warnings": self.warnings,
            "sale_record_id": str(self.sale_record_id) if self.sale_record_id else None,
            "sale_record_type": self.sale_record_type,
            "ledger_entry_id": str(self.ledger_entry_id) if self.ledger_entry_id else None,
            "event_log_id": str(self.event_log_id) if self.event_log_id else None,
        }


StepAction = Callable[[_WriteContext], Awaitable[StepOutcome]]


class OutcomeReconciler:
    """Runs the ordered multi-record write for one sales event."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self._db = db
        self._settings = settings or get_settings()

    async def reconcile(self, event: SaleEvent) -> ReconcileResult:
        validate_event(event)
        if event.booking_id is not None:
            await self._require_live_booking(event.booking_id)

        steps = StepLedger()
        warnings: list[dict] = []

        # RULE_EVALUATED: pure, no side effects
        quote = evaluate_commission(
            event.tier, build_event(event.event_kind, event.previous_tier),
        )
        attribution = await resolve_attribution(
            self._db, event.booking_id, event.client_name, event.acting_staff,
            today=event.event_date,
            lookback_days=self._settings.duplicate_lookback_days,
            fuzzy_threshold=self._settings.fuzzy_match_threshold,
        )
        steps.record(StepOutcome(
            ReconcileState.RULE_EVALUATED, StepStatus.OK,
            f"{quote.amount} credited to {attribution.staff_name} "
            f"via {attribution.provenance.value}",
        ))
        warnings.extend(_rule_warnings(quote, attribution))

        ctx = _WriteContext(event=event, quote=quote, attribution=attribution)
        pipeline: list[tuple[ReconcileState, StepAction]] = [
            (ReconcileState.RUN_UPDATED, self._write_sale_record),
            (ReconcileState.BOOKING_SYNCED, self._sync_booking),
            (ReconcileState.QUEUE_CLEARED, self._clear_queue),
            (ReconcileState.LEDGER_UPDATED, self._update_ledger),
        ]
        for step, action in pipeline:
            if not steps.should_run(step):
                steps.record(steps.blocked(step))
                continue
            steps.record(await self._run_step(step, action, ctx))

        final_state = steps.final_state()
        event_log_id = await self._log_event(ctx, steps, final_state, warnings)

        log = logger.warning if final_state == ReconcileState.PARTIAL_FAILURE else logger.info
        log(
            f"Reconciled {event.event_kind.value} sale for {event.client_name!r}: "
            f"{final_state.value}",
            extra={
                "booking_id": event.booking_id,
                "acting_staff": event.acting_staff,
                "final_state": final_state.value,
            },
        )
        return ReconcileResult(
            commission=quote,
            attribution=attribution,
            steps=list(steps.outcomes),
            final_state=final_state,
            last_completed=steps.last_completed(),
            warnings=warnings,
            sale_record_id=ctx.sale_record_id,
            sale_record_type=ctx.sale_record_type,
            ledger_entry_id=ctx.ledger_entry_id,
            event_log_id=event_log_id,
        )

    async def _require_live_booking(self, booking_id: UUID) -> Booking:
        """The sale's booking, rejected before any write when missing or excluded."""
        booking = await get_booking(self._db, booking_id)
        if booking is None:
            raise ResourceNotFoundError("Booking", str(booking_id))
        if not is_candidate(booking):
            state = "deleted" if booking.deleted_at is not None else booking.status
            raise SalesEventValidationError(
                f"Booking '{booking_id}' is {state} and cannot take a sale", "booking_id",
            )
        return booking

    async def _run_step(
        self, step: ReconcileState, action: StepAction, ctx: _WriteContext,
    ) -> StepOutcome:
        """Run and commit one step. Failures are rolled back and reported, not raised."""
        try:
            outcome = await action(ctx)
            await self._db.commit()
            return outcome
        except (SQLAlchemyError, StudioSalesError) as e:
            await self._db.rollback()
            if isinstance(e, StepWriteError):
                error = e
            else:
                error = StepWriteError(
                    step.value,
                    e.message if isinstance(e, StudioSalesError) else str(e),
                    ErrorContext(booking_id=_str_or_none(ctx.event.booking_id)),
                )
            logger.error(
                error.message,
                extra={
                    "step": step.value,
                    "booking_id": ctx.event.booking_id,
                    "error_code": error.code,
                    "acting_staff": ctx.event.acting_staff,
                },
            )
            return StepOutcome(step, StepStatus.FAILED, error.message)

    # ─── Steps ───────────────────────────────────────────────────

    async def _write_sale_record(self, ctx: _WriteContext) -> StepOutcome:
        if writes_intro_run(ctx.event):
            record, created = await self._upsert_intro_run(ctx)
            ctx.sale_record_type = "intro_run"
        else:
            record, created = await self._upsert_outside_sale(ctx)
            ctx.sale_record_type = "outside_sale"
        await self._db.flush()
        ctx.sale_record_id = record.id
        verb = "Created" if created else "Updated"
        return StepOutcome(
            ReconcileState.RUN_UPDATED, StepStatus.OK,
            f"{verb} {ctx.sale_record_type.replace('_', ' ')}", record.id,
        )

    async def _upsert_intro_run(self, ctx: _WriteContext) -> tuple[IntroRun, bool]:
        event = ctx.event
        run = None
        if event.run_id is not None:
            run = await self._db.get(IntroRun, event.run_id)
            if run is None:
                raise StepWriteError(
                    ReconcileState.RUN_UPDATED.value, f"Run '{event.run_id}' not found",
                )
        else:
            result = await self._db.execute(
                select(IntroRun)
                .where(IntroRun.booking_id == event.booking_id)
                .order_by(IntroRun.created_at.desc())
                .limit(1),
            )
            run = result.scalar_one_or_none()

        created = run is None
        if created:
            run = IntroRun(
                booking_id=event.booking_id,
                client_name=event.client_name.strip(),
                run_date=event.event_date,
            )
            self._db.add(run)
        run.result = result_for_tier(ctx.quote.tier).value
        run.buy_date = run.buy_date or event.event_date
        run.is_self_gen = event.is_self_gen
        _apply_sale_fields(run, ctx)
        return run, created

    async def _upsert_outside_sale(self, ctx: _WriteContext) -> tuple[OutsideSale, bool]:
        event = ctx.event
        tier_label = _tier_label(ctx.quote.tier, event.tier)
        if event.sale_record_id is not None:
            sale = await self._db.get(OutsideSale, event.sale_record_id)
            if sale is None:
                raise StepWriteError(
                    ReconcileState.RUN_UPDATED.value,
                    f"Outside sale '{event.sale_record_id}' not found",
                )
        else:
            result = await self._db.execute(
                select(OutsideSale).where(
                    OutsideSale.client_key == client_key(event.client_name),
                    OutsideSale.date_closed == event.event_date,
                    OutsideSale.sale_kind == event.event_kind.value,
                    OutsideSale.tier == tier_label,
                ).limit(1),
            )
            sale = result.scalar_one_or_none()

        created = sale is None
        if created:
            sale = OutsideSale(
                client_name=event.client_name.strip(),
                client_key=client_key(event.client_name),
                date_closed=event.event_date,
            )
            self._db.add(sale)
        sale.lead_source = event.lead_source or sale.lead_source
        _apply_sale_fields(sale, ctx)
        return sale, created

    async def _sync_booking(self, ctx: _WriteContext) -> StepOutcome:
        event = ctx.event
        if not syncs_booking(event):
            reason = (
                "No booking linked" if event.booking_id is None
                else f"{event.event_kind.value} does not change booking status"
            )
            return StepOutcome(ReconcileState.BOOKING_SYNCED, StepStatus.SKIPPED, reason)

        booking = await get_booking(self._db, event.booking_id)
        if booking is None:
            raise StepWriteError(
                ReconcileState.BOOKING_SYNCED.value, f"Booking '{event.booking_id}' not found",
            )
        now = datetime.now(timezone.utc)
        booking.status = BookingStatus.CLOSED_PURCHASED.value
        booking.closed_at = booking.closed_at or now
        booking.closed_by = event.acting_staff or ctx.attribution.staff_name
        if (
            not booking.intro_owner_locked
            and not (booking.intro_owner or "").strip()
            and ctx.attribution.provenance != AttributionRule.UNKNOWN
        ):
            booking.intro_owner = ctx.attribution.staff_name
            # a best guess stays open to the misattribution audit
            booking.intro_owner_locked = not ctx.attribution.ambiguous
        booking.last_edited_at = now
        booking.last_edited_by = event.acting_staff
        booking.edit_reason = f"Status synced: {ctx.quote.tier.value} purchase"
        return StepOutcome(
            ReconcileState.BOOKING_SYNCED, StepStatus.OK,
            "Booking marked closed_purchased", booking.id,
        )

    async def _clear_queue(self, ctx: _WriteContext) -> StepOutcome:
        event = ctx.event
        if event.event_kind != EventKind.NEW:
            return StepOutcome(
                ReconcileState.QUEUE_CLEARED, StepStatus.SKIPPED,
                "Existing members have no follow-up touches",
            )
        converted = await mark_converted(self._db, event.booking_id, event.client_name)
        return StepOutcome(
            ReconcileState.QUEUE_CLEARED, StepStatus.OK,
            f"{converted} open follow-up item(s) converted",
        )

    async def _update_ledger(self, ctx: _WriteContext) -> StepOutcome:
        event = ctx.event
        decision = await ledger_service.classify(
            self._db, event.event_kind, event.client_name, event.event_date,
            event.is_reactivation,
        )
        if not decision.should_insert:
            return StepOutcome(
                ReconcileState.LEDGER_UPDATED, StepStatus.SKIPPED, decision.explanation,
            )
        try:
            entry = await ledger_service.record_ledger_event(
                self._db, decision, event.client_name,
                sale_record_id=ctx.sale_record_id,
                created_by=event.acting_staff,
                note=event.note,
                baseline=self._settings.ledger_baseline,
            )
        except IntegrityError:
            await self._db.rollback()
            return StepOutcome(
                ReconcileState.LEDGER_UPDATED, StepStatus.SKIPPED,
                "Ledger entry already recorded by a concurrent reconciliation",
            )
        ctx.ledger_entry_id = entry.id
        return StepOutcome(
            ReconcileState.LEDGER_UPDATED, StepStatus.OK,
            f"Ledger count now {entry.count_value}", entry.id,
        )

    # ─── Event Log ───────────────────────────────────────────────

    async def _log_event(
        self,
        ctx: _WriteContext,
        steps: StepLedger,
        final_state: ReconcileState,
        warnings: list[dict],
    ) -> UUID | None:
        event = ctx.event
        row = OutcomeEvent(
            booking_id=event.booking_id,
            sale_record_id=ctx.sale_record_id,
            client_name=event.client_name.strip(),
            event_date=event.event_date,
            event_kind=event.event_kind.value,
            tier=ctx.quote.tier.value,
            commission_amount=ctx.quote.amount,
            credited_staff=ctx.attribution.staff_name,
            attribution_provenance=ctx.attribution.provenance.value,
            attribution_ambiguous=ctx.attribution.ambiguous,
            final_state=final_state.value,
            step_statuses=[o.to_dict() for o in steps.outcomes],
            acting_staff=event.acting_staff,
            note=event.note,
        )
        try:
            self._db.add(row)
            await self._db.commit()
            return row.id
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.warning(
                f"Outcome event log write failed: {e}",
                extra={"booking_id": event.booking_id, "error_code": "EVENT_LOG_FAILED"},
            )
            warnings.append({
                "code": "EVENT_LOG_FAILED",
                "message": "Sale recorded but the outcome history entry could not be written",
            })
            return None


# ─── Helpers ─────────────────────────────────────────────────────

def _tier_label(tier: MembershipTier, raw: str | None) -> str | None:
    if tier == MembershipTier.UNKNOWN:
        return raw.strip() if raw else None
    return tier.value


def _apply_sale_fields(record: "IntroRun | OutsideSale", ctx: _WriteContext) -> None:
    event = ctx.event
    previous = parse_tier(event.previous_tier) if event.previous_tier else None
    record.tier = _tier_label(ctx.quote.tier, event.tier)
    record.sale_kind = event.event_kind.value
    record.previous_tier = (
        _tier_label(previous, event.previous_tier) if previous is not None else None
    )
    record.commission_amount = ctx.quote.amount
    record.intro_owner = ctx.attribution.staff_name
    record.attribution_provenance = ctx.attribution.provenance.value
    record.attribution_flagged = ctx.attribution.ambiguous
    if event.note:
        record.notes = event.note
    record.last_edited_at = datetime.now(timezone.utc)
    record.last_edited_by = event.acting_staff


def _rule_warnings(quote: CommissionQuote, attribution: Attribution) -> list[dict]:
    warnings = []
    for message in quote.warnings:
        warnings.append({"code": "MANUAL_ENTRY_NEEDED", "message": message})
    if quote.anomaly:
        warnings.append({"code": "COMMISSION_ANOMALY", "message": quote.anomaly})
    if attribution.ambiguous:
        warnings.append({
            "code": "ATTRIBUTION_AMBIGUOUS",
            "message": (
                f"Credited {attribution.staff_name} as a best guess"
                + (f": {attribution.note}" if attribution.note else "")
            ),
        })
    return warnings


def _str_or_none(value: UUID | None) -> str | None:
    return str(value) if value is not None else None
