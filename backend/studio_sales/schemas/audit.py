"""Audit Schemas: snapshot, fix and history response models."""

from datetime import datetime

from pydantic import BaseModel

from studio_sales.core.audit_rules import AuditSnapshot, FixAllReport, FixOutcome


class ManualFixModel(BaseModel):
    record_id: str
    name: str
    field: str
    current_value: str | None = None
    suggested_value: str | None = None


class CheckResultModel(BaseModel):
    check_id: str
    name: str
    category: str
    status: str
    count: int
    description: str
    affected_ids: list[str] = []
    affected_names: list[str] = []
    fix_available: bool = False
    auto_fixable_count: int = 0
    proposed_fixes: list[ManualFixModel] = []
    manual_fixes: list[ManualFixModel] = []
    error: str | None = None


class SnapshotResponse(BaseModel):
    id: str | None = None
    timestamp: datetime
    total_checks: int
    pass_count: int
    warn_count: int
    fail_count: int
    results: list[CheckResultModel]

    @classmethod
    def from_snapshot(cls, snapshot: AuditSnapshot) -> "SnapshotResponse":
        return cls(
            id=snapshot.id,
            timestamp=snapshot.timestamp,
            total_checks=snapshot.total_checks,
            pass_count=snapshot.pass_count,
            warn_count=snapshot.warn_count,
            fail_count=snapshot.fail_count,
            results=[CheckResultModel(**r.to_dict()) for r in snapshot.results],
        )


class FixOutcomeModel(BaseModel):
    check_id: str
    fixed_count: int
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: FixOutcome) -> "FixOutcomeModel":
        return cls(check_id=outcome.check_id, fixed_count=outcome.fixed, error=outcome.error)


class FixAllResponse(BaseModel):
    total_fixed: int
    attempted: int
    per_check: list[FixOutcomeModel]

    @classmethod
    def from_report(cls, report: FixAllReport) -> "FixAllResponse":
        return cls(
            total_fixed=report.total_fixed,
            attempted=report.attempted,
            per_check=[FixOutcomeModel.from_outcome(o) for o in report.per_check],
        )


class FixAllRequest(BaseModel):
    """Optional snapshot to fix from; the latest persisted snapshot when omitted."""
    snapshot_id: str | None = None
