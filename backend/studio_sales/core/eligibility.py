"""Eligibility Classifier: decides whether a sale event increments the monthly-count ledger.

Invariants:
    - New membership (any source) is eligible with reason new_membership
    - Re-activation is eligible with reason reactivation, but only when the caller flags it
    - Upgrade and AddOn are never eligible
    - An event whose (client_key, date, reason) is already recorded is not inserted again

Design Decisions:
    - Existing keys are passed in by the shell: the check stays pure and testable
    - The same key is enforced by a unique constraint on the ledger table, so a race
      between two reconciliations still produces at most one row
"""

from dataclasses import dataclass
from datetime import date

from studio_sales.core.domain_types import EventKind, LedgerReason
from studio_sales.core.names import client_key as make_client_key

LedgerKey = tuple[str, date, str]


@dataclass(frozen=True)
class LedgerDecision:
    eligible: bool
    reason: LedgerReason | None
    key: LedgerKey | None
    already_recorded: bool = False
    explanation: str = ""

    @property
    def should_insert(self) -> bool:
        return self.eligible and not self.already_recorded


def ledger_reason(event_kind: "EventKind | str", is_reactivation: bool = False) -> LedgerReason | None:
    """Decision table. None means the event never touches the ledger."""
    kind = EventKind(event_kind)
    if kind != EventKind.NEW:
        return None
    return LedgerReason.REACTIVATION if is_reactivation else LedgerReason.NEW_MEMBERSHIP


def ledger_key(client_name: str, event_date: date, reason: LedgerReason) -> LedgerKey:
    return (make_client_key(client_name), event_date, reason.value)


def classify_ledger_event(
    event_kind: "EventKind | str",
    client_name: str,
    event_date: date,
    is_reactivation: bool = False,
    existing_keys: "set[LedgerKey] | frozenset[LedgerKey]" = frozenset(),
) -> LedgerDecision:
    reason = ledger_reason(event_kind, is_reactivation)
    if reason is None:
        return LedgerDecision(
            False, None, None,
            explanation=f"{EventKind(event_kind).value} events never change the ledger",
        )
    key = ledger_key(client_name, event_date, reason)
    if not key[0]:
        return LedgerDecision(False, reason, None, explanation="Client name is empty")
    if key in existing_keys:
        return LedgerDecision(
            True, reason, key, already_recorded=True,
            explanation="Ledger entry already recorded for this client and date",
        )
    return LedgerDecision(True, reason, key, explanation=f"Eligible: {reason.value}")


def is_ledger_eligible(
    event_kind: "EventKind | str",
    client_name: str,
    event_date: date,
    is_reactivation: bool = False,
    existing_keys: "set[LedgerKey] | frozenset[LedgerKey]" = frozenset(),
) -> bool:
    """True when this event should insert a new ledger entry."""
    return classify_ledger_event(
        event_kind, client_name, event_date, is_reactivation, existing_keys,
    ).should_insert


def next_count_value(latest_value: int | None, baseline: int = 0) -> int:
    """Running count carried by a new ledger row: previous value plus one."""
    return (latest_value if latest_value is not None else baseline) + 1
