"""Audit Routes: run audits, read history, apply fixes.

Invariants:
    - POST /runs always runs a fresh audit; POST /refresh is debounced
    - Unknown check ids -> 404 UNKNOWN_CHECK; a failing fix is a 200 with its error
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studio_sales.config import Settings, get_settings
from studio_sales.core.errors import ResourceNotFoundError
from studio_sales.infrastructure.database import get_session_factory
from studio_sales.schemas.audit import (
    FixAllRequest, FixAllResponse, FixOutcomeModel, SnapshotResponse,
)
from studio_sales.services.auditor import Auditor

router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


def get_auditor(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> Auditor:
    return Auditor(session_factory, settings)


@router.post("/runs", response_model=SnapshotResponse)
async def run_audit(auditor: Auditor = Depends(get_auditor)):
    return SnapshotResponse.from_snapshot(await auditor.run_audit())


@router.post("/refresh")
async def refresh_audit(request: Request, auditor: Auditor = Depends(get_auditor)):
    """Debounced audit for screens that refresh on navigation."""
    trigger = getattr(request.app.state, "audit_trigger", None)
    snapshot = await trigger.refresh() if trigger else await auditor.run_audit()
    if snapshot is None:
        return {"skipped": True, "snapshot": None}
    return {"skipped": False, "snapshot": SnapshotResponse.from_snapshot(snapshot)}


@router.get("/runs", response_model=list[SnapshotResponse])
async def audit_history(
    limit: int = Query(10, ge=1, le=100),
    auditor: Auditor = Depends(get_auditor),
):
    return [SnapshotResponse.from_snapshot(s) for s in await auditor.get_audit_history(limit)]


@router.post("/fixes/{check_id}", response_model=FixOutcomeModel)
async def run_fix(check_id: str, auditor: Auditor = Depends(get_auditor)):
    return FixOutcomeModel.from_outcome(await auditor.run_fix(check_id))


@router.post("/fixes", response_model=FixAllResponse)
async def run_all_fixes(
    body: FixAllRequest | None = None,
    auditor: Auditor = Depends(get_auditor),
):
    snapshot = None
    if body is not None and body.snapshot_id:
        snapshot = await auditor.get_snapshot(body.snapshot_id)
        if snapshot is None:
            raise ResourceNotFoundError("Audit snapshot", body.snapshot_id)
    return FixAllResponse.from_report(await auditor.run_all_fixes(snapshot))
