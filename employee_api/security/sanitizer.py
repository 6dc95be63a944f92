"""
Input Sanitizer - Validation Rules for Employee Fields
=============================================================================
CONCEPT: Normalize First, Then Allow-List

Every free-text value that reaches an Employee record (name, role) or a
query (sort column, page bounds) passes through this module. The order of
operations matters:

    raw input -> [trim] -> [NFC + control stripping] -> [length] -> [allow-list]

  1. NORMALIZATION - Unicode has several encodings for what a reader sees
     as the same text. "é" can be one code point (U+00E9) or two
     ("e" + U+0301 COMBINING ACUTE ACCENT). NFC (canonical composition)
     folds both into one form, so two visually identical names are stored
     identically and compare equal.

  2. CONTROL STRIPPING - C0 controls (U+0000-U+001F), DEL (U+007F) and C1
     controls (U+0080-U+009F) never belong in a name or title. They are
     used for log forging ("\\n[INFO] admin logged in"), terminal escape
     injection ("\\x1b[2J") and invisible-character smuggling. We delete
     them outright instead of rejecting the input:
         "John\\u0007Doe" -> "JohnDoe"

  3. ALLOW-LISTING - After normalization, the value must consist only of
     permitted character classes. Allow-lists (what IS permitted) are far
     safer than deny-lists (what is NOT), because an attacker only needs
     one character the deny-list forgot.

CONCEPT: Why Not `re` With \\p{L}?
  Python's built-in `re` module has no Unicode property classes. Instead of
  a pattern, we check each code point's general category with
  `unicodedata.category()`:
      "L*" = letters (any script: Latin, Arabic, Cyrillic, CJK, ...)
      "M*" = combining marks (accents that survive NFC, e.g. Devanagari)
      "N*" = numbers (decimal digits, Roman numerals, superscripts)

CONCEPT: Sort Field Injection
  ORDER BY columns cannot be bound as query parameters, so a sort column
  taken from a URL is an injection vector ("name; DROP TABLE employees").
  validate_sort_field() applies two gates: identifier syntax, then an exact
  match against SORTABLE_FIELDS. Both failures raise the same error kind,
  with different messages for diagnostics.

Every function here is pure: no state, no I/O, safe to call from any number
of concurrent requests.
=============================================================================
"""

import re
import unicodedata


# =============================================================================
# Limits & Allow-Lists
# =============================================================================
NAME_MAX_LENGTH = 100
ROLE_MAX_LENGTH = 50
MAX_PAGE_SIZE = 1000
# Largest row offset (page * size) a signed 64-bit OFFSET can hold.
MAX_OFFSET = 2**63 - 1

# Public (API-facing) attribute names a listing may be ordered by.
# The repository derives its ORDER BY column mapping from this tuple.
SORTABLE_FIELDS: tuple[str, ...] = ("id", "name", "role", "createdAt", "updatedAt")
DEFAULT_SORT_FIELD = "id"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_SORT_FIELD_SYNTAX = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Trimming removes every code point <= U+0020 from both ends.
_TRIM_CHARS = "".join(chr(code) for code in range(0x21))
_WHITESPACE = frozenset(" \t\n\x0b\x0c\r")

_NAME_CATEGORIES = frozenset("LM")
_NAME_PUNCTUATION = frozenset("'.-")

_ROLE_CATEGORIES = frozenset("LMN")
_ROLE_PUNCTUATION = frozenset("._-")


class InvalidInput(ValueError):
    """Raised when a value breaks one of the sanitization rules."""


# =============================================================================
# Normalization
# =============================================================================
def normalize_text(value: str | None) -> str | None:
    """
    Return the NFC form of `value` with all control characters removed.

    `None` passes through unchanged. This never fails.

    The result is normalized a second time after stripping: removing a
    control character can leave a base letter directly in front of a
    combining mark ("e\\x07\\u0301" -> "e\\u0301"), which NFC composes to
    "é". Without the second pass the function would not be idempotent.
    """
    if value is None:
        return None
    stripped = _CONTROL_CHARS.sub("", unicodedata.normalize("NFC", value))
    return unicodedata.normalize("NFC", stripped)


def _trim(value: str) -> str:
    return value.strip(_TRIM_CHARS)


def _is_allowed(value: str, categories: frozenset[str], punctuation: frozenset[str]) -> bool:
    if not value:
        return False
    for char in value:
        if char in punctuation or char in _WHITESPACE:
            continue
        if unicodedata.category(char)[0] not in categories:
            return False
    return True


def _sanitize_field(
    value: str | None,
    label: str,
    max_length: int,
    categories: frozenset[str],
    punctuation: frozenset[str],
) -> str:
    if value is None or not _trim(value):
        raise InvalidInput(f"{label} cannot be null or empty")

    sanitized = normalize_text(_trim(value))
    if sanitized is None:
        raise InvalidInput(f"{label} normalization failed")

    if len(sanitized) > max_length:
        raise InvalidInput(f"{label} is too long (max {max_length} characters)")

    if not _is_allowed(sanitized, categories, punctuation):
        raise InvalidInput(f"{label} contains invalid characters")

    return sanitized


# =============================================================================
# Field Validators
# =============================================================================
def validate_and_sanitize_name(name: str | None) -> str:
    """
    Validate and sanitize an employee name.

    Allowed: letters, combining marks, whitespace, apostrophe, period and
    hyphen. Enough for "Mary-Jane O'Neil", "J. R. R. Tolkien" or
    "Zoë Saldaña", and nothing that could be markup or query syntax.

    Raises:
        InvalidInput: blank, longer than 100 code points, or containing a
            character outside the allowed set.
    """
    return _sanitize_field(
        name, "Name", NAME_MAX_LENGTH, _NAME_CATEGORIES, _NAME_PUNCTUATION
    )


def validate_and_sanitize_role(role: str | None) -> str:
    """
    Validate and sanitize an employee role/title.

    Same pipeline as names, but capped at 50 code points and allowing
    numbers and underscores ("Engineer II", "SRE_L3", "Analyst-2") while
    rejecting apostrophes.
    """
    return _sanitize_field(
        role, "Role", ROLE_MAX_LENGTH, _ROLE_CATEGORIES, _ROLE_PUNCTUATION
    )


# =============================================================================
# Query Parameter Validators
# =============================================================================
def validate_pagination_params(page: int, size: int) -> None:
    """
    Reject a negative page index or a page size outside (0, 1000].

    A page so far out that its row offset would overflow the database's
    64-bit OFFSET is rejected as well.
    """
    if page < 0:
        raise InvalidInput("Page number cannot be negative")
    if size <= 0:
        raise InvalidInput("Page size must be positive")
    if size > MAX_PAGE_SIZE:
        raise InvalidInput(f"Page size too large (max {MAX_PAGE_SIZE})")
    if page * size > MAX_OFFSET:
        raise InvalidInput("Page number too large")


def validate_sort_field(sort_by: str | None) -> str:
    """
    Check that `sort_by` names a sortable attribute and return the field to
    order by.

    A missing or blank value (nothing left after trimming every code point
    <= U+0020, so "\\x01" counts as blank) means "default ordering" and
    yields DEFAULT_SORT_FIELD.

    Matching is exact and case-sensitive: "Name" is rejected.
    """
    if sort_by is None or not _trim(sort_by):
        return DEFAULT_SORT_FIELD

    if not _SORT_FIELD_SYNTAX.fullmatch(sort_by):
        raise InvalidInput(f"Invalid sort field: {normalize_text(sort_by)}")

    if sort_by not in SORTABLE_FIELDS:
        raise InvalidInput(f"Sort field not allowed: {sort_by}")

    return sort_by


# =============================================================================
# Comparison
# =============================================================================
def role_equals(first: str | None, second: str | None) -> bool:
    """
    Compare two roles the way the business rules expect.

    Both sides are normalized, then compared case-insensitively, so
    "Engineer", "engineer" and "ENGINEER" are the same role. If either side
    is missing the roles are never equal.
    """
    if first is None or second is None:
        return False
    return normalize_text(first).casefold() == normalize_text(second).casefold()
