"""Name Matching: tests for normalization, phonetics and duplicate ranking.

Tests cover:
    - normalize_name is idempotent and strips punctuation
    - Soundex codes and phonetic equality
    - classify_match: exact, fuzzy, partial, no match
    - rank_candidates ordering, phone agreement, warnings, limit
    - Deleted and duplicate bookings are never candidates
    - find_duplicate_pairs skips 2nd-intro lineage
    - looks_like_client_name / is_staff_shaped
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from studio_sales.core.domain_types import MatchType
from studio_sales.core.matching import (
    classify_match, find_duplicate_pairs, rank_candidates,
)
from studio_sales.core.names import (
    client_key, is_staff_shaped, looks_like_client_name, normalize_name,
    phonetically_equal, similarity, soundex,
)

TODAY = date.today()


@dataclass
class _Booking:
    client_name: str
    class_date: date = TODAY
    phone: str | None = None
    status: str = "active"
    booked_by: str | None = "Sarah"
    deleted_at: datetime | None = None
    originating_booking_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ─── names ───────────────────────────────────────────────────────

def test_normalize_name_strips_and_collapses():
    assert normalize_name("  Mary-Jane   O'Neil! ") == "mary jane oneil"
    assert normalize_name(None) == ""


def test_normalize_name_is_idempotent():
    once = normalize_name("Dr. John  SMITH, Jr.")
    assert normalize_name(once) == once


def test_client_key_matches_normalized_name():
    assert client_key("John Smith") == client_key("john  smith ")


def test_soundex_codes():
    assert soundex("Robert") == "R163"
    assert soundex("Rupert") == "R163"
    assert soundex("Smith") == soundex("Smyth") == "S530"
    assert soundex("") == ""


def test_phonetic_equality_needs_same_token_count():
    assert phonetically_equal("jon smyth", "john smith")
    assert not phonetically_equal("john", "john smith")


def test_similarity_is_symmetric_and_bounded():
    a, b = "john smith", "jon smyth"
    assert similarity(a, b) == similarity(b, a)
    assert 0.0 <= similarity(a, b) <= 1.0
    assert similarity("", "x") == 0.0


# ─── classify_match ──────────────────────────────────────────────

@pytest.mark.parametrize("query,candidate,expected", [
    ("John Smith", "john smith", MatchType.EXACT),
    ("Jon Smyth", "John Smith", MatchType.FUZZY),
    ("John", "John Smith", MatchType.PARTIAL),
    ("Alice Walker", "John Smith", None),
])
def test_classify_match(query, candidate, expected):
    match_type, _ = classify_match(query, candidate)
    assert match_type == expected


# ─── rank_candidates ─────────────────────────────────────────────

def test_exact_match_returned_with_warning():
    booking = _Booking("John Smith", class_date=TODAY - timedelta(days=4))
    matches = rank_candidates("John Smith", None, [booking])
    assert len(matches) == 1
    assert matches[0].match_type == MatchType.EXACT
    assert "Same name as" in matches[0].warning
    assert "active intro" in matches[0].warning


def test_fuzzy_match_for_misspelled_name():
    matches = rank_candidates("Jon Smyth", None, [_Booking("John Smith")])
    assert matches[0].match_type == MatchType.FUZZY


def test_ranking_prefers_exact_then_phone():
    exact = _Booking("John Smith", class_date=TODAY - timedelta(days=40))
    fuzzy_phone = _Booking("Jon Smith", phone="2055551234")
    fuzzy = _Booking("Jon Smith", phone=None)
    matches = rank_candidates(
        "John Smith", "(205) 555-1234", [fuzzy, fuzzy_phone, exact],
    )
    assert [m.booking_id for m in matches] == [exact.id, fuzzy_phone.id, fuzzy.id]
    assert matches[1].phone_match


def test_phone_only_match_is_partial():
    booking = _Booking("Jane Doe", phone="2055551234")
    matches = rank_candidates("Completely Different", "205-555-1234", [booking])
    assert matches[0].match_type == MatchType.PARTIAL
    assert matches[0].phone_match


def test_deleted_and_duplicate_bookings_are_excluded():
    candidates = [
        _Booking("John Smith", deleted_at=datetime.now(timezone.utc)),
        _Booking("John Smith", status="duplicate"),
    ]
    assert rank_candidates("John Smith", None, candidates) == []


def test_limit_and_short_query():
    candidates = [_Booking("John Smith") for _ in range(8)]
    assert len(rank_candidates("John Smith", None, candidates, limit=5)) == 5
    assert rank_candidates("J", None, candidates) == []


# ─── find_duplicate_pairs ────────────────────────────────────────

def test_duplicate_pairs_are_earlier_then_later():
    first = _Booking("John Smith", class_date=TODAY - timedelta(days=10))
    second = _Booking("john smith", class_date=TODAY - timedelta(days=1))
    pairs = find_duplicate_pairs([second, first])
    assert len(pairs) == 1
    assert pairs[0][0] is first and pairs[0][1] is second


def test_second_intro_is_not_a_duplicate():
    first = _Booking("John Smith", class_date=TODAY - timedelta(days=10))
    second = _Booking("John Smith", originating_booking_id=first.id)
    assert find_duplicate_pairs([first, second]) == []


# ─── client-shaped values ────────────────────────────────────────

def test_roster_names_are_never_client_shaped():
    assert not looks_like_client_name("Sarah", {"Sarah"}, {"Sarah"})
    assert not looks_like_client_name("TBD", set())


def test_known_client_and_member_key_values_are_client_shaped():
    assert looks_like_client_name("John Smith", {"Sarah"}, {"john smith"})
    assert looks_like_client_name("johnsmith", {"Sarah"})
    assert not looks_like_client_name("Mike", set())


def test_is_staff_shaped_uses_roster_when_configured():
    assert is_staff_shaped("sarah", {"Sarah"})
    assert not is_staff_shaped("Bob", {"Sarah"})
    assert is_staff_shaped("Bob", set())
    assert not is_staff_shaped("Unknown", set())
