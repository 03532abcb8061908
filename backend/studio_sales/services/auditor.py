"""Data Integrity Auditor: runs registered checks, persists snapshots, applies fixes.

Invariants:
    - Checks run concurrently, each on its own session (read-only, independent)
    - A check that raises is reported as fail with its error; the snapshot still completes
    - Fixes run sequentially, one session and one commit per check
    - Fix-all continues past a failing fix; every attempt is in the report
    - History keeps the newest `history_limit` snapshots

Design Decisions:
    - Session factory instead of a session: concurrent checks cannot share one session
    - Registry injectable: tests substitute failing or counting checks
"""

import asyncio
import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studio_sales.config import Settings, get_settings
from studio_sales.core.audit_rules import (
    AuditSnapshot, CheckResult, FixAllReport, FixOutcome,
    build_result, build_snapshot, errored_result,
)
from studio_sales.core.errors import DatabaseError, UnknownCheckError
from studio_sales.models.audit_run import AuditRun
from studio_sales.services.audit_checks import AuditConfig
from studio_sales.services.audit_registry import AuditCheck, build_registry

logger = logging.getLogger(__name__)


class Auditor:
    """Runs the integrity check registry against the database."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        registry: dict[str, AuditCheck] | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or get_settings()
        self._config = AuditConfig.from_settings(self._settings)
        self._registry = registry if registry is not None else build_registry()

    @property
    def checks(self) -> list[AuditCheck]:
        return list(self._registry.values())

    # ─── Audit ───────────────────────────────────────────────────

    async def run_audit(self) -> AuditSnapshot:
        """Run every check concurrently and persist the snapshot."""
        results = await asyncio.gather(
            *(self._run_check(check) for check in self._registry.values()),
        )
        snapshot = build_snapshot(list(results))
        snapshot = await self._save(snapshot)
        logger.info(
            f"Audit complete: {snapshot.pass_count} pass, "
            f"{snapshot.warn_count} warn, {snapshot.fail_count} fail",
        )
        return snapshot

    async def _run_check(self, check: AuditCheck) -> CheckResult:
        try:
            async with self._session_factory() as db:
                findings = await check.query(db, self._config)
        except Exception as e:
            logger.error(
                f"Audit check {check.check_id} failed: {e}",
                exc_info=True,
                extra={"check_id": check.check_id, "error_code": "CHECK_FAILED"},
            )
            return errored_result(check.check_id, check.name, check.category, str(e))
        return build_result(
            check.check_id, check.name, check.category, findings,
            check.failing_status,
            has_fix=check.fix is not None,
            pass_description=check.pass_description,
            fail_description=check.describe_failure(findings.count),
            threshold=check.threshold,
        )

    async def _save(self, snapshot: AuditSnapshot) -> AuditSnapshot:
        row = AuditRun(
            run_at=snapshot.timestamp,
            total_checks=snapshot.total_checks,
            pass_count=snapshot.pass_count,
            warn_count=snapshot.warn_count,
            fail_count=snapshot.fail_count,
            results=[r.to_dict() for r in snapshot.results],
        )
        async with self._session_factory() as db:
            try:
                db.add(row)
                await db.flush()
                stale = await db.execute(
                    select(AuditRun.id)
                    .order_by(AuditRun.run_at.desc())
                    .offset(self._settings.audit_history_limit),
                )
                stale_ids = list(stale.scalars().all())
                if stale_ids:
                    await db.execute(delete(AuditRun).where(AuditRun.id.in_(stale_ids)))
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Saving audit snapshot failed: {e}")
                raise DatabaseError("Could not save audit snapshot", "insert")
        return AuditSnapshot(
            timestamp=snapshot.timestamp, results=snapshot.results, id=str(row.id),
        )

    # ─── History ─────────────────────────────────────────────────

    async def get_audit_history(self, limit: int = 10) -> list[AuditSnapshot]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AuditRun).order_by(AuditRun.run_at.desc()).limit(limit),
            )
            rows = result.scalars().all()
        return [
            AuditSnapshot(
                timestamp=row.run_at,
                results=tuple(CheckResult.from_dict(r) for r in row.results),
                id=str(row.id),
            )
            for row in rows
        ]

    async def get_snapshot(self, snapshot_id: str) -> AuditSnapshot | None:
        try:
            key = UUID(snapshot_id)
        except ValueError:
            return None
        async with self._session_factory() as db:
            row = await db.get(AuditRun, key)
        if row is None:
            return None
        return AuditSnapshot(
            timestamp=row.run_at,
            results=tuple(CheckResult.from_dict(r) for r in row.results),
            id=str(row.id),
        )

    async def latest_snapshot(self) -> AuditSnapshot | None:
        history = await self.get_audit_history(limit=1)
        return history[0] if history else None

    # ─── Fixes ───────────────────────────────────────────────────

    async def run_fix(self, check_id: str) -> FixOutcome:
        """Apply one check's automated fix. Errors are returned, not raised."""
        check = self._registry.get(check_id)
        if check is None:
            raise UnknownCheckError(check_id)
        if check.fix is None:
            return FixOutcome(check_id, 0, "This check has no automated fix")

        async with self._session_factory() as db:
            try:
                fixed = await check.fix(db, self._config)
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error(
                    f"Fix for {check_id} failed: {e}",
                    exc_info=True,
                    extra={"check_id": check_id, "error_code": "FIX_FAILED"},
                )
                return FixOutcome(check_id, 0, str(e))
        logger.info(
            f"Fix for {check_id} updated {fixed} record(s)",
            extra={"check_id": check_id, "fixed_count": fixed},
        )
        return FixOutcome(check_id, fixed)

    async def run_all_fixes(self, snapshot: AuditSnapshot | None = None) -> FixAllReport:
        """Apply every available fix in the snapshot, sequentially, continuing on error.

        Without a snapshot the latest persisted one is used, or a fresh audit when
        none exists yet.
        """
        if snapshot is None:
            snapshot = await self.latest_snapshot() or await self.run_audit()

        report = FixAllReport()
        for result in snapshot.fixable():
            if result.check_id not in self._registry:
                report.record(FixOutcome(result.check_id, 0, "Check is no longer registered"))
                continue
            report.record(await self.run_fix(result.check_id))
        logger.info(
            f"Fix all: {report.total_fixed} fixed across {report.attempted} check(s), "
            f"{len(report.failed)} failed",
            extra={"fixed_count": report.total_fixed},
        )
        return report
