"""Name Identity: normalization, similarity and phonetic keys for client names.

Invariants:
    - normalize_name is idempotent: normalize_name(normalize_name(x)) == normalize_name(x)
    - client_key is the identity used for ledger idempotency and follow-up lookup
    - similarity() is symmetric and bounded 0.0-1.0

Design Decisions:
    - difflib.SequenceMatcher for edit similarity: same approach as other
      reconciliation engines in the codebase, no native dependency
    - American Soundex per token for phonetic agreement ("Jon Smyth" ~ "John Smith")
"""

import re
from difflib import SequenceMatcher

_PUNCTUATION = re.compile(r"[^\w\s'-]")
_WHITESPACE = re.compile(r"\s+")

_SOUNDEX_CODES = {
    **dict.fromkeys("bfpv", "1"),
    **dict.fromkeys("cgjkqsxz", "2"),
    **dict.fromkeys("dt", "3"),
    "l": "4",
    **dict.fromkeys("mn", "5"),
    "r": "6",
}


def normalize_name(name: str | None) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    if not name:
        return ""
    text = _PUNCTUATION.sub(" ", name.lower())
    text = text.replace("'", "").replace("-", " ")
    return _WHITESPACE.sub(" ", text).strip()


def client_key(name: str | None) -> str:
    return normalize_name(name)


def tokens(name: str | None) -> list[str]:
    normalized = normalize_name(name)
    return normalized.split(" ") if normalized else []


def similarity(a: str, b: str) -> float:
    """Edit similarity of two already-normalized names."""
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def soundex(word: str) -> str:
    """American Soundex code, e.g. 'smith' -> 'S530'. Empty for empty input."""
    letters = [c for c in word.lower() if c.isalpha()]
    if not letters:
        return ""
    first = letters[0]
    code = first.upper()
    last = _SOUNDEX_CODES.get(first, "")
    for c in letters[1:]:
        digit = _SOUNDEX_CODES.get(c, "")
        if digit and digit != last:
            code += digit
        if c not in "hw":
            last = digit
        if len(code) == 4:
            break
    return code.ljust(4, "0")


def phonetically_equal(a: str, b: str) -> bool:
    """Every token of a sounds like the token of b at the same position."""
    ta, tb = tokens(a), tokens(b)
    if not ta or len(ta) != len(tb):
        return False
    return all(soundex(x) == soundex(y) for x, y in zip(ta, tb))


def shares_token(a: str, b: str, min_length: int = 2) -> bool:
    ta = {t for t in tokens(a) if len(t) >= min_length}
    tb = {t for t in tokens(b) if len(t) >= min_length}
    return bool(ta & tb)


def looks_like_client_name(
    value: str | None,
    staff_roster: "frozenset[str] | set[str]",
    client_names: "frozenset[str] | set[str]" = frozenset(),
) -> bool:
    """True when an attribution field holds a client-name-shaped value.

    Staff names on the roster and placeholder values are never client-shaped.
    A value is client-shaped when it equals a known client name (normalized), or
    when it has the member-key form (all lowercase, no spaces) the legacy import
    wrote into owner fields.
    """
    if not value or not value.strip():
        return False
    stripped = value.strip()
    roster = {normalize_name(s) for s in staff_roster}
    if normalize_name(stripped) in roster or stripped in {"TBD", "Unknown"}:
        return False
    if normalize_name(stripped) in {normalize_name(c) for c in client_names}:
        return True
    return stripped == stripped.lower() and " " not in stripped


def is_staff_shaped(
    value: str | None, staff_roster: "frozenset[str] | set[str]",
) -> bool:
    """Usable as a credited staff name: non-empty and on the roster when one is configured."""
    if not value or not value.strip() or value.strip() in {"TBD", "Unknown"}:
        return False
    if staff_roster:
        return normalize_name(value) in {normalize_name(s) for s in staff_roster}
    return not looks_like_client_name(value, staff_roster)
