"""Audit Registry: explicit check_id -> check definition mapping.

Invariants:
    - Every check is visible in build_registry(); no auto-discovery
    - A check offers a fix only when the correct value is unambiguously derivable
    - Registry order is the order results appear in a snapshot

Design Decisions:
    - Explicit dict over decorators: adding a check requires editing this file
    - Descriptions are plain English for the studio manager, not developer jargon
"""

from dataclasses import dataclass
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from studio_sales.core.audit_rules import CheckFindings, pluralize
from studio_sales.core.domain_types import CheckStatus
from studio_sales.services import audit_checks as checks
from studio_sales.services import audit_fixes as fixes

CheckQuery = Callable[[AsyncSession, checks.AuditConfig], Awaitable[CheckFindings]]
CheckFix = Callable[[AsyncSession, checks.AuditConfig], Awaitable[int]]


@dataclass(frozen=True)
class AuditCheck:
    check_id: str
    name: str
    category: str
    failing_status: CheckStatus
    query: CheckQuery
    pass_description: str
    describe_failure: Callable[[int], str]
    fix: CheckFix | None = None
    threshold: int = 0


def build_registry() -> dict[str, AuditCheck]:
    """All integrity checks, keyed by check_id."""
    registry = [
        AuditCheck(
            "misattributed_intro_owner", "Intro Owner Misattribution",
            "Booking Attribution", CheckStatus.FAIL,
            checks.find_misattributed_owners,
            "Every intro owner is a staff member",
            lambda n: f"{pluralize(n, 'booking')} credit a client name instead of a staff member",
            fixes.fix_misattributed_owners,
        ),
        AuditCheck(
            "malformed_phone", "Malformed Phone Numbers", "Contact Data", CheckStatus.WARN,
            checks.find_malformed_phones,
            "All phone numbers are stored as 10 digits",
            lambda n: f"{pluralize(n, 'booking')} with a phone number not in 10-digit form",
            fixes.fix_malformed_phones,
        ),
        AuditCheck(
            "missing_booked_by", "Booked By Missing", "Booking Attribution", CheckStatus.WARN,
            checks.find_missing_booked_by,
            'All bookings have a "booked by" staff name',
            lambda n: f'{pluralize(n, "booking")} missing the "booked by" staff name',
            fixes.fix_missing_booked_by,
        ),
        AuditCheck(
            "missing_coach", "Coach Missing", "Booking Attribution", CheckStatus.WARN,
            checks.find_missing_coach,
            "Every completed intro has a coach recorded",
            lambda n: f"{pluralize(n, 'completed intro')} without a coach",
        ),
        AuditCheck(
            "missing_lead_source", "Lead Source Missing", "Booking Attribution", CheckStatus.WARN,
            checks.find_missing_lead_source,
            "All bookings have a lead source recorded",
            lambda n: f"{pluralize(n, 'booking')} with no lead source",
        ),
        AuditCheck(
            "commission_mismatch", "Commission Mismatch", "Commission", CheckStatus.FAIL,
            checks.find_commission_mismatches,
            "Every stored commission matches the commission rules",
            lambda n: f"{pluralize(n, 'sale')} whose commission disagrees with the tier rules",
            fixes.fix_commission_mismatches,
        ),
        AuditCheck(
            "flagged_attribution", "Best-Guess Attribution", "Commission", CheckStatus.WARN,
            checks.find_flagged_attributions,
            "No sale was credited on a best guess",
            lambda n: f"{pluralize(n, 'sale')} credited on a best guess, confirm the staff member",
        ),
        AuditCheck(
            "outcome_status_sync", "Outcome Status Sync", "Outcomes", CheckStatus.FAIL,
            checks.find_unsynced_outcomes,
            "Every sold intro shows as purchased on its booking",
            lambda n: f"{pluralize(n, 'booking')} with a sale that is not marked purchased",
            fixes.fix_unsynced_outcomes,
        ),
        AuditCheck(
            "unlinked_runs", "Runs Without Booking", "Data Orphans", CheckStatus.WARN,
            checks.find_unlinked_runs,
            "Every logged intro is linked to a booking",
            lambda n: f"{pluralize(n, 'logged intro')} not linked to any booking",
        ),
        AuditCheck(
            "orphaned_follow_ups", "Orphaned Follow-Ups", "Follow-Up Queue", CheckStatus.FAIL,
            checks.find_orphaned_follow_ups,
            "Every open follow-up belongs to a prospect who has not bought",
            lambda n: f"{pluralize(n, 'open follow-up')} for a purchased, deleted or missing booking",
            fixes.fix_orphaned_follow_ups,
        ),
        AuditCheck(
            "missing_ledger_entry", "Ledger Entry Missing", "Ledger", CheckStatus.WARN,
            checks.find_missing_ledger_entries,
            "Every new membership is counted in the ledger",
            lambda n: f"{pluralize(n, 'new membership')} not counted in the ledger",
            fixes.fix_missing_ledger_entries,
        ),
        AuditCheck(
            "duplicate_ledger_entries", "Duplicate Ledger Entries", "Ledger", CheckStatus.FAIL,
            checks.find_duplicate_ledger_entries,
            "No client is counted twice on the same day",
            lambda n: f"{pluralize(n, 'extra ledger entry', 'extra ledger entries')} for the same client and day",
        ),
        AuditCheck(
            "referral_status_sync", "Referral Qualification", "Referrals", CheckStatus.WARN,
            checks.find_unqualified_referrals,
            "Referral statuses match both clients' purchases",
            lambda n: f"{pluralize(n, 'referral')} where both clients bought but status is pending",
            fixes.fix_unqualified_referrals,
        ),
        AuditCheck(
            "possible_duplicate_bookings", "Possible Duplicate Bookings", "Duplicates",
            CheckStatus.WARN,
            checks.find_possible_duplicate_bookings,
            "No bookings look like duplicates of each other",
            lambda n: f"{pluralize(n, 'booking')} that may duplicate an earlier booking",
        ),
    ]
    return {check.check_id: check for check in registry}
