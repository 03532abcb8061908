"""Outcome Routes: commission, attribution, ledger eligibility and reconciliation.

Invariants:
    - Routes only translate HTTP <-> service calls; decisions live in core/
    - Reconcile returns 200 with per-step status even on PARTIAL_FAILURE: the
      caller needs to see exactly which records were written
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.config import Settings, get_settings
from studio_sales.core.commission import build_event, evaluate_commission
from studio_sales.core.reconcile_plan import SaleEvent
from studio_sales.infrastructure.database import get_db
from studio_sales.schemas.outcomes import (
    AttributionRequest, AttributionResponse, CommissionRequest, CommissionResponse,
    EligibilityRequest, EligibilityResponse, ReconcileRequest,
)
from studio_sales.services import ledger as ledger_service
from studio_sales.services.attribution_service import resolve_attribution
from studio_sales.services.reconciler import OutcomeReconciler

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["outcomes"])


@router.post("/commission/resolve", response_model=CommissionResponse)
async def resolve_commission(body: CommissionRequest):
    quote = evaluate_commission(body.tier, build_event(body.event_kind, body.previous_tier))
    return CommissionResponse(
        amount=quote.amount,
        tier=quote.tier.value,
        event_kind=quote.event_kind,
        warnings=list(quote.warnings),
        anomaly=quote.anomaly,
        needs_manual_entry=quote.needs_manual_entry,
    )


@router.post("/attribution/resolve", response_model=AttributionResponse)
async def resolve_attribution_route(
    body: AttributionRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    attribution = await resolve_attribution(
        db, body.booking_id, body.client_name, body.acting_staff,
        lookback_days=settings.duplicate_lookback_days,
        fuzzy_threshold=settings.fuzzy_match_threshold,
    )
    return AttributionResponse(
        staff_name=attribution.staff_name,
        provenance=attribution.provenance.value,
        ambiguous=attribution.ambiguous,
        source_booking_id=attribution.source_booking_id,
        note=attribution.note,
    )


@router.post("/outcomes/eligibility", response_model=EligibilityResponse)
async def ledger_eligibility(
    body: EligibilityRequest, db: AsyncSession = Depends(get_db),
):
    decision = await ledger_service.classify(
        db, body.event_kind, body.client_name, body.event_date, body.is_reactivation,
    )
    return EligibilityResponse(
        eligible=decision.eligible,
        should_insert=decision.should_insert,
        already_recorded=decision.already_recorded,
        reason=decision.reason.value if decision.reason else None,
        explanation=decision.explanation,
    )


@router.post("/outcomes/reconcile")
async def reconcile_outcome(
    body: ReconcileRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    event = SaleEvent(**body.model_dump())
    result = await OutcomeReconciler(db, settings).reconcile(event)
    return result.to_dict()
