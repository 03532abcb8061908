"""Phone Parsing: US phone normalization, validation and extraction.

Invariants:
    - Canonical storage form is exactly 10 digits
    - 11-digit numbers with a leading country code 1 are reduced to 10 digits
    - Area codes starting with 0 or 1 are invalid (normalize returns None)
    - All functions are pure and never raise
"""

import html
import re

_TAG = re.compile(r"<[^>]*>")
_TEL_LINK = re.compile(r"tel:\s*\+?1?[.\s-]?(\(?\d{3}\)?[.\s-]?\d{3}[.\s-]?\d{4})", re.I)
_PATTERNS = (
    re.compile(r"\((\d{3})\)\s*(\d{3})[.\s-](\d{4})"),
    re.compile(r"(?:^|\D)(\d{3})[.\s-](\d{3})[.\s-](\d{4})(?:\D|$)"),
    re.compile(r"\+1\s*(\d{3})\s*(\d{3})\s*(\d{4})"),
    re.compile(r"(?:\+?1[\s.-]?)?\(?(\d{3})\)?[\s.-]?(\d{3})[\s.-]?(\d{4})"),
)


def normalize_phone(raw: str | None) -> str | None:
    """Return the canonical 10-digit form, or None if not a valid US number."""
    if not raw:
        return None
    digits = re.sub(r"\D", "", raw)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10 or digits[0] in "01":
        return None
    return digits


def is_canonical_phone(raw: str | None) -> bool:
    return bool(raw) and normalize_phone(raw) == raw


def format_phone_display(digits: str | None) -> str | None:
    """(205) 555-1234 for valid numbers; other input returned unchanged."""
    if not digits:
        return None
    clean = normalize_phone(digits)
    if not clean:
        return digits
    return f"({clean[:3]}) {clean[3:6]}-{clean[6:]}"


def extract_phone(raw: str | None) -> str | None:
    """Pull a US phone number out of free text or HTML."""
    if not raw:
        return None
    unescaped = html.unescape(raw)
    tel = _TEL_LINK.search(unescaped)
    if tel:
        found = normalize_phone(tel.group(1))
        if found:
            return found

    text = re.sub(r"\s+", " ", _TAG.sub(" ", unescaped)).strip()

    for pattern in _PATTERNS:
        match = pattern.search(text)
        if match:
            found = normalize_phone("".join(match.groups()))
            if found:
                return found
    return None
