"""Data Integrity Auditor: tests for snapshots, history and fix orchestration.

Tests cover:
    - A clean database passes every registered check
    - Misattributed intro owner: check fails, proposes booked_by, Fix All rewrites it
    - A check that raises is reported as fail; the snapshot still completes
    - Fix All attempts exactly the fixable checks and continues past an error
    - Unknown check id raises UnknownCheckError; checks without a fix report an error
    - History is trimmed to the configured limit
"""

import pytest

from studio_sales.config import Settings
from studio_sales.core.audit_rules import CheckFindings, ManualFix
from studio_sales.core.domain_types import CheckStatus
from studio_sales.core.errors import UnknownCheckError
from studio_sales.models.booking import Booking
from studio_sales.services.audit_registry import AuditCheck, build_registry
from studio_sales.services.auditor import Auditor


def _by_id(snapshot):
    return {r.check_id: r for r in snapshot.results}


def _make_check(check_id: str, found: int, fix=None, query=None) -> AuditCheck:
    async def _query(db, cfg):
        return CheckFindings(
            violation_ids=tuple(f"{check_id}-{i}" for i in range(found)),
            violation_names=tuple(f"Client {i}" for i in range(found)),
            proposed_fixes=tuple(
                ManualFix(f"{check_id}-{i}", f"Client {i}", "status", "a", "b")
                for i in range(found)
            ),
        )
    return AuditCheck(
        check_id, check_id.title(), "Test", CheckStatus.FAIL, query or _query,
        "ok", lambda n: f"{n} found", fix,
    )


# ─── Snapshots ───────────────────────────────────────────────────

async def test_clean_database_passes_every_check(test_session_factory, seed_booking, settings):
    await seed_booking()
    snapshot = await Auditor(test_session_factory, settings).run_audit()
    assert snapshot.total_checks == len(build_registry())
    assert snapshot.fail_count == 0
    assert snapshot.warn_count == 0
    assert snapshot.id is not None


async def test_misattribution_detected_and_fixed(test_db, test_session_factory, seed_booking, settings):
    booking = await seed_booking("John Smith", intro_owner="John Smith", booked_by="Sarah")
    auditor = Auditor(test_session_factory, settings)

    snapshot = await auditor.run_audit()
    result = _by_id(snapshot)["misattributed_intro_owner"]
    assert result.status == CheckStatus.FAIL
    assert result.count == 1
    assert result.fix_available
    assert result.proposed_fixes[0].suggested_value == "Sarah"

    report = await auditor.run_all_fixes(snapshot)
    assert report.failed == []
    assert "misattributed_intro_owner" in {o.check_id for o in report.per_check}

    fixed = await test_db.get(Booking, booking.id)
    await test_db.refresh(fixed)
    assert fixed.intro_owner == "Sarah"
    assert fixed.last_edited_by == "Data Audit"

    after = _by_id(await auditor.run_audit())["misattributed_intro_owner"]
    assert after.status == CheckStatus.PASS


async def test_locked_owner_is_never_flagged(test_session_factory, seed_booking, settings):
    await seed_booking("John Smith", intro_owner="John Smith", intro_owner_locked=True)
    snapshot = await Auditor(test_session_factory, settings).run_audit()
    assert _by_id(snapshot)["misattributed_intro_owner"].status == CheckStatus.PASS


async def test_raising_check_reported_as_fail(test_session_factory, settings):
    async def _boom(db, cfg):
        raise RuntimeError("query exploded")

    registry = {
        "good": _make_check("good", 0),
        "bad": _make_check("bad", 0, query=_boom),
    }
    snapshot = await Auditor(test_session_factory, settings, registry).run_audit()
    results = _by_id(snapshot)
    assert results["good"].status == CheckStatus.PASS
    assert results["bad"].status == CheckStatus.FAIL
    assert results["bad"].error == "query exploded"
    assert snapshot.total_checks == 2


# ─── Fixes ───────────────────────────────────────────────────────

async def test_fix_all_runs_each_fixable_check_once_and_continues(test_session_factory, settings):
    calls = []

    def _fix(check_id, fixed):
        async def _apply(db, cfg):
            calls.append(check_id)
            if fixed is None:
                raise RuntimeError("fix exploded")
            return fixed
        return _apply

    registry = {
        "a": _make_check("a", 2, _fix("a", 2)),
        "b": _make_check("b", 1, _fix("b", None)),
        "c": _make_check("c", 0, _fix("c", 0)),
        "d": _make_check("d", 3, _fix("d", 3)),
        "e": _make_check("e", 4),
    }
    auditor = Auditor(test_session_factory, settings, registry)
    snapshot = await auditor.run_audit()
    report = await auditor.run_all_fixes(snapshot)

    assert calls == ["a", "b", "d"]
    assert report.attempted == 3
    assert report.total_fixed == 5
    assert [o.check_id for o in report.failed] == ["b"]
    assert report.failed[0].error == "fix exploded"


async def test_fix_all_without_snapshot_uses_latest(test_session_factory, settings):
    calls = []

    async def _apply(db, cfg):
        calls.append("a")
        return 1

    auditor = Auditor(test_session_factory, settings, {"a": _make_check("a", 1, _apply)})
    await auditor.run_audit()
    report = await auditor.run_all_fixes()
    assert report.total_fixed == 1
    assert calls == ["a"]


async def test_unknown_check_id_raises(test_session_factory, settings):
    with pytest.raises(UnknownCheckError):
        await Auditor(test_session_factory, settings).run_fix("no_such_check")


async def test_check_without_fix_reports_error(test_session_factory, settings):
    outcome = await Auditor(test_session_factory, settings).run_fix("missing_coach")
    assert not outcome.succeeded
    assert outcome.fixed == 0


# ─── History ─────────────────────────────────────────────────────

async def test_history_trimmed_to_limit(test_session_factory):
    settings = Settings(
        database_url="sqlite+aiosqlite:///unused.db",
        studio_staff=["Sarah", "Mike", "Dana"],
        audit_history_limit=2,
    )
    auditor = Auditor(test_session_factory, settings, {"a": _make_check("a", 0)})
    snapshots = [await auditor.run_audit() for _ in range(3)]

    history = await auditor.get_audit_history(limit=10)
    assert len(history) == 2
    assert snapshots[0].id not in {s.id for s in history}
    assert (await auditor.latest_snapshot()).id == history[0].id


async def test_get_snapshot_by_id(test_session_factory, settings):
    auditor = Auditor(test_session_factory, settings, {"a": _make_check("a", 1)})
    saved = await auditor.run_audit()
    loaded = await auditor.get_snapshot(saved.id)
    assert loaded.results[0].check_id == "a"
    assert loaded.results[0].count == 1
    assert await auditor.get_snapshot("not-a-uuid") is None
