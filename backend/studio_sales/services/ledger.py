"""Ledger Service: idempotent inserts into the monthly-count ledger.

Invariants:
    - An insert happens only when the classifier says should_insert
    - Existing (client_key, date, reason) rows are checked first; the table's unique
      constraint is the backstop for concurrent inserts
    - count_value = most recently inserted count_value + 1 (baseline when the ledger
      is empty); a backdated sale never reuses a later row's count
    - Does not commit: the caller owns the transaction boundary
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.core.domain_types import EventKind
from studio_sales.core.eligibility import (
    LedgerDecision, classify_ledger_event, next_count_value,
)
from studio_sales.core.names import client_key
from studio_sales.models.ledger_entry import MonthlyCountEntry

logger = logging.getLogger(__name__)


async def existing_keys_for(
    db: AsyncSession, client_name: str, event_date: date,
) -> set[tuple[str, date, str]]:
    key = client_key(client_name)
    result = await db.execute(
        select(MonthlyCountEntry.client_key, MonthlyCountEntry.event_date, MonthlyCountEntry.reason)
        .where(
            MonthlyCountEntry.client_key == key,
            MonthlyCountEntry.event_date == event_date,
        ),
    )
    return {tuple(row) for row in result.all()}


async def latest_count_value(db: AsyncSession) -> int | None:
    result = await db.execute(
        select(MonthlyCountEntry.count_value)
        .order_by(MonthlyCountEntry.created_at.desc(), MonthlyCountEntry.count_value.desc())
        .limit(1),
    )
    return result.scalar_one_or_none()


async def classify(
    db: AsyncSession,
    event_kind: "EventKind | str",
    client_name: str,
    event_date: date,
    is_reactivation: bool = False,
) -> LedgerDecision:
    """Classifier decision with the existing-entry check filled in from the database."""
    existing = await existing_keys_for(db, client_name, event_date)
    return classify_ledger_event(
        event_kind, client_name, event_date, is_reactivation, existing,
    )


async def record_ledger_event(
    db: AsyncSession,
    decision: LedgerDecision,
    client_name: str,
    sale_record_id: UUID | None = None,
    created_by: str | None = None,
    note: str | None = None,
    baseline: int = 0,
) -> MonthlyCountEntry | None:
    """Add a ledger row for an insertable decision. None when nothing was added."""
    if not decision.should_insert:
        return None
    key, event_date, reason = decision.key
    entry = MonthlyCountEntry(
        client_name=client_name.strip(),
        client_key=key,
        event_date=event_date,
        reason=reason,
        count_value=next_count_value(await latest_count_value(db), baseline),
        sale_record_id=sale_record_id,
        created_by=created_by,
        note=note,
    )
    db.add(entry)
    await db.flush()
    logger.info(
        f"Ledger +1 for {client_name!r} ({reason}) -> {entry.count_value}",
        extra={"acting_staff": created_by},
    )
    return entry
