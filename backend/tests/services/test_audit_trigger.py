"""Audit Trigger: tests for the debounced refresh and the coarse timer."""

import asyncio

from studio_sales.services.audit_trigger import AuditTrigger


class _FakeAuditor:
    def __init__(self):
        self.runs = 0

    async def run_audit(self):
        self.runs += 1
        return f"snapshot-{self.runs}"


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


async def test_refresh_is_debounced():
    auditor, clock = _FakeAuditor(), _Clock()
    trigger = AuditTrigger(auditor, interval_minutes=0, debounce_seconds=60, clock=clock)

    assert await trigger.refresh() == "snapshot-1"
    clock.now += 30
    assert await trigger.refresh() is None
    assert await trigger.refresh(force=True) == "snapshot-2"
    clock.now += 61
    assert await trigger.refresh() == "snapshot-3"


async def test_timer_disabled_when_interval_is_zero():
    trigger = AuditTrigger(_FakeAuditor(), interval_minutes=0)
    trigger.start()
    assert not trigger.running
    await trigger.stop()


async def test_timer_starts_and_stops():
    trigger = AuditTrigger(_FakeAuditor(), interval_minutes=30)
    trigger.start()
    assert trigger.running
    await trigger.stop()
    assert not trigger.running
    await asyncio.sleep(0)
