"""Audit Rules: pure result types and status derivation for integrity checks.

Invariants:
    - 0 violations -> pass; otherwise the check's failing status, unless the count
      stays within the check's tolerance threshold
    - A check that errored is reported as fail with its error message, never dropped
    - A snapshot's pass/warn/fail counts always sum to its total check count
    - An automated fix is offered only when the check names a fix action AND found
      records it can safely rewrite

Design Decisions:
    - proposed_fixes preview exactly what an automated fix would write; manual_fixes
      list records a human must correct, with a suggested value when one is known
    - Fix outcomes are accumulated per check ({check_id, fixed, error}) instead of
      raised, so a fix-all loop continues past individual failures
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from studio_sales.core.domain_types import CheckStatus


@dataclass(frozen=True)
class ManualFix:
    """One record that needs a human edit."""
    record_id: str
    name: str
    field: str
    current_value: str | None = None
    suggested_value: str | None = None


@dataclass(frozen=True)
class CheckFindings:
    """What a check's query found, before status derivation."""
    violation_ids: tuple[str, ...] = ()
    violation_names: tuple[str, ...] = ()
    proposed_fixes: tuple[ManualFix, ...] = ()
    manual_fixes: tuple[ManualFix, ...] = ()

    @property
    def count(self) -> int:
        return len(self.violation_ids)


@dataclass(frozen=True)
class CheckResult:
    check_id: str
    name: str
    category: str
    status: CheckStatus
    count: int
    description: str
    affected_ids: tuple[str, ...] = ()
    affected_names: tuple[str, ...] = ()
    fix_available: bool = False
    proposed_fixes: tuple[ManualFix, ...] = ()
    manual_fixes: tuple[ManualFix, ...] = ()
    error: str | None = None

    @property
    def auto_fixable_count(self) -> int:
        return len(self.proposed_fixes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["affected_ids"] = list(self.affected_ids)
        data["affected_names"] = list(self.affected_names)
        data["proposed_fixes"] = [asdict(m) for m in self.proposed_fixes]
        data["manual_fixes"] = [asdict(m) for m in self.manual_fixes]
        data["auto_fixable_count"] = self.auto_fixable_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckResult":
        return cls(
            check_id=data["check_id"],
            name=data["name"],
            category=data["category"],
            status=CheckStatus(data["status"]),
            count=data["count"],
            description=data["description"],
            affected_ids=tuple(data.get("affected_ids") or ()),
            affected_names=tuple(data.get("affected_names") or ()),
            fix_available=data.get("fix_available", False),
            proposed_fixes=tuple(ManualFix(**m) for m in data.get("proposed_fixes") or ()),
            manual_fixes=tuple(ManualFix(**m) for m in data.get("manual_fixes") or ()),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class AuditSnapshot:
    timestamp: datetime
    results: tuple[CheckResult, ...]
    id: str | None = None

    @property
    def total_checks(self) -> int:
        return len(self.results)

    @property
    def pass_count(self) -> int:
        return sum(1 for r in self.results if r.status == CheckStatus.PASS)

    @property
    def warn_count(self) -> int:
        return sum(1 for r in self.results if r.status == CheckStatus.WARN)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if r.status == CheckStatus.FAIL)

    def fixable(self) -> list[CheckResult]:
        """Results a fix-all pass should attempt, in snapshot order."""
        return [r for r in self.results if r.fix_available and r.status != CheckStatus.PASS]


@dataclass(frozen=True)
class FixOutcome:
    check_id: str
    fixed: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class FixAllReport:
    total_fixed: int = 0
    attempted: int = 0
    per_check: list[FixOutcome] = field(default_factory=list)

    def record(self, outcome: FixOutcome) -> None:
        self.attempted += 1
        self.total_fixed += outcome.fixed
        self.per_check.append(outcome)

    @property
    def failed(self) -> list[FixOutcome]:
        return [o for o in self.per_check if not o.succeeded]


# ─── Derivation ──────────────────────────────────────────────────

def derive_status(
    count: int, failing_status: CheckStatus, threshold: int = 0,
) -> CheckStatus:
    """Status for a violation count. Counts at or below threshold pass."""
    if count <= threshold:
        return CheckStatus.PASS
    return failing_status


def build_result(
    check_id: str,
    name: str,
    category: str,
    findings: CheckFindings,
    failing_status: CheckStatus,
    has_fix: bool,
    pass_description: str,
    fail_description: str,
    threshold: int = 0,
) -> CheckResult:
    """Combine a check's definition with what its query found."""
    status = derive_status(findings.count, failing_status, threshold)
    description = pass_description if status == CheckStatus.PASS else fail_description
    return CheckResult(
        check_id=check_id,
        name=name,
        category=category,
        status=status,
        count=findings.count,
        description=description,
        affected_ids=findings.violation_ids,
        affected_names=findings.violation_names,
        fix_available=has_fix and bool(findings.proposed_fixes),
        proposed_fixes=findings.proposed_fixes,
        manual_fixes=findings.manual_fixes,
    )


def errored_result(check_id: str, name: str, category: str, error: str) -> CheckResult:
    return CheckResult(
        check_id=check_id,
        name=name,
        category=category,
        status=CheckStatus.FAIL,
        count=0,
        description=f"Check could not run: {error}",
        error=error,
    )


def build_snapshot(results: "list[CheckResult]", timestamp: datetime | None = None) -> AuditSnapshot:
    return AuditSnapshot(
        timestamp=timestamp or datetime.now(timezone.utc),
        results=tuple(results),
    )


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    return f"{count} {singular if count == 1 else (plural or singular + 's')}"
