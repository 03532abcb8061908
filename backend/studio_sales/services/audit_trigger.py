"""Audit Trigger: coarse timer and debounced on-demand refresh for the auditor.

Invariants:
    - At most one audit runs at a time per trigger
    - refresh() is skipped when the last run is within the debounce window
    - The timer only runs when interval_minutes > 0; it is not a polling loop

Design Decisions:
    - Started and stopped by the FastAPI lifespan; an audit failure inside the timer
      is logged and the timer keeps its schedule
"""

import asyncio
import logging
import time
from contextlib import suppress
from typing import Callable

from studio_sales.core.audit_rules import AuditSnapshot
from studio_sales.services.auditor import Auditor

logger = logging.getLogger(__name__)


class AuditTrigger:
    def __init__(
        self,
        auditor: Auditor,
        interval_minutes: int = 30,
        debounce_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._auditor = auditor
        self._interval_seconds = interval_minutes * 60
        self._debounce_seconds = debounce_seconds
        self._clock = clock
        self._last_run: float | None = None
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_debounced(self) -> bool:
        return (
            self._last_run is not None
            and self._clock() - self._last_run < self._debounce_seconds
        )

    async def refresh(self, force: bool = False) -> AuditSnapshot | None:
        """Run the audit unless one ran within the debounce window. None when skipped."""
        if not force and (self.is_debounced() or self._lock.locked()):
            return None
        async with self._lock:
            self._last_run = self._clock()
            return await self._auditor.run_audit()

    async def _run_forever(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await self.refresh(force=True)
            except Exception as e:
                logger.error(f"Scheduled audit failed: {e}", exc_info=True)

    def start(self) -> None:
        if self._interval_seconds <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._run_forever())
        logger.info(f"Audit timer started ({self._interval_seconds // 60} min interval)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
