"""Audit Rules: tests for check status derivation and snapshot bookkeeping.

Tests cover:
    - 0 violations pass; otherwise the check's failing status unless within threshold
    - fix_available requires both a fix action and proposed fixes
    - Errored checks are FAIL with their message
    - Snapshot counts sum to total; fixable() keeps snapshot order
    - CheckResult survives to_dict/from_dict (persisted history)
    - FixAllReport accumulates outcomes, including failures
"""

from studio_sales.core.audit_rules import (
    CheckFindings, CheckResult, FixAllReport, FixOutcome, ManualFix,
    build_result, build_snapshot, derive_status, errored_result, pluralize,
)
from studio_sales.core.domain_types import CheckStatus


def _make_findings(count: int, fixes: int = 0) -> CheckFindings:
    return CheckFindings(
        violation_ids=tuple(str(i) for i in range(count)),
        violation_names=tuple(f"Client {i}" for i in range(count)),
        proposed_fixes=tuple(
            ManualFix(str(i), f"Client {i}", "intro_owner", "x", "Sarah") for i in range(fixes)
        ),
    )


def _make_result(check_id: str, count: int, fixes: int = 0, has_fix: bool = True) -> CheckResult:
    return build_result(
        check_id, check_id.title(), "Test", _make_findings(count, fixes),
        CheckStatus.FAIL, has_fix, "All good", f"{count} bad",
    )


# ─── derive_status ───────────────────────────────────────────────

def test_zero_violations_pass():
    assert derive_status(0, CheckStatus.FAIL) == CheckStatus.PASS


def test_violations_use_failing_status():
    assert derive_status(3, CheckStatus.WARN) == CheckStatus.WARN
    assert derive_status(1, CheckStatus.FAIL) == CheckStatus.FAIL


def test_threshold_tolerates_small_counts():
    assert derive_status(2, CheckStatus.WARN, threshold=2) == CheckStatus.PASS
    assert derive_status(3, CheckStatus.WARN, threshold=2) == CheckStatus.WARN


# ─── build_result ────────────────────────────────────────────────

def test_result_descriptions_follow_status():
    assert _make_result("a", 0).description == "All good"
    assert _make_result("a", 2).description == "2 bad"


def test_fix_available_needs_action_and_proposals():
    assert _make_result("a", 2, fixes=2).fix_available
    assert not _make_result("a", 2, fixes=0).fix_available
    assert not _make_result("a", 2, fixes=2, has_fix=False).fix_available


def test_errored_result_is_fail_with_message():
    result = errored_result("a", "A", "Test", "boom")
    assert result.status == CheckStatus.FAIL
    assert result.error == "boom"
    assert "boom" in result.description


def test_result_round_trips_through_dict():
    original = _make_result("a", 2, fixes=1)
    data = original.to_dict()
    assert data["status"] == "fail"
    assert data["auto_fixable_count"] == 1
    assert CheckResult.from_dict(data) == original


# ─── Snapshot ────────────────────────────────────────────────────

def test_snapshot_counts_sum_to_total():
    snapshot = build_snapshot([
        _make_result("a", 0),
        _make_result("b", 2, fixes=1),
        errored_result("c", "C", "Test", "boom"),
        build_result(
            "d", "D", "Test", _make_findings(1), CheckStatus.WARN, False, "ok", "warn",
        ),
    ])
    assert (snapshot.pass_count, snapshot.warn_count, snapshot.fail_count) == (1, 1, 2)
    assert snapshot.pass_count + snapshot.warn_count + snapshot.fail_count == snapshot.total_checks


def test_fixable_keeps_order_and_skips_passing():
    snapshot = build_snapshot([
        _make_result("b", 1, fixes=1),
        _make_result("a", 0),
        _make_result("c", 3, fixes=3),
    ])
    assert [r.check_id for r in snapshot.fixable()] == ["b", "c"]


# ─── FixAllReport ────────────────────────────────────────────────

def test_fix_all_report_accumulates():
    report = FixAllReport()
    report.record(FixOutcome("a", 3))
    report.record(FixOutcome("b", 0, "boom"))
    report.record(FixOutcome("c", 1))
    assert report.total_fixed == 4
    assert report.attempted == 3
    assert [o.check_id for o in report.failed] == ["b"]


def test_pluralize():
    assert pluralize(1, "booking") == "1 booking"
    assert pluralize(2, "booking") == "2 bookings"
    assert pluralize(2, "entry", "entries") == "2 entries"
