"""
URL pattern language for tracking exclusion and masking.

Patterns describe sets of request paths:

- ``/checkout`` matches that path exactly.
- ``*`` matches zero or more characters within one path segment.
- ``**`` matches zero or more characters across segments and is only
  allowed as the final token of a pattern.

The same validation, normalisation and regex translation is shared by
the request-time exclusion check and the admin "test my pattern"
endpoints so the three can never drift apart.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Iterable

from src.models.patterns import PatternKind, PatternTestResult, ValidationResult
from src.utils import url

# ============================================================================
# Validation Rules
# ============================================================================

_INVALID_CHARACTERS = re.compile(r"[^a-zA-Z0-9\-_.*/]")
_EXCESS_WILDCARD = re.compile(r"\*{3,}")

_RECURSIVE_EXAMPLE_SUFFIXES = ("/page", "/page/subpage", "/a/b/c")
_WILDCARD_EXAMPLE_FILLS = ("example", "123", "test-item")

MESSAGE_EMPTY = "Pattern cannot be empty."
MESSAGE_NO_LEADING_SLASH = "Pattern must start with a forward slash (/)."
MESSAGE_INVALID_CHARACTERS = (
    "Pattern contains invalid characters. Only alphanumeric characters, hyphens,"
    " underscores, dots, asterisks, and forward slashes are allowed."
)
MESSAGE_CONSECUTIVE_SLASHES = "Pattern cannot contain consecutive forward slashes."
MESSAGE_EXCESS_WILDCARD = "Invalid wildcard usage. Use * for single segment or ** for multiple segments."
MESSAGE_MISPLACED_DOUBLE_WILDCARD = "Double wildcard (**) should only be used at the end of a pattern."
MESSAGE_VALID = "Pattern is valid."
MESSAGE_MATCH = "URL matches the pattern."
MESSAGE_NO_MATCH = "URL does not match the pattern."


def normalize(pattern: str) -> str:
    """Strip a trailing slash unless the pattern is ``/`` or ends in ``**``."""
    if len(pattern) > 1 and pattern.endswith("/") and not pattern.endswith("**"):
        return pattern[:-1]
    return pattern


def pattern_kind(normalized: str) -> PatternKind:
    """Classify a normalised pattern by the wildcards it contains."""
    if "**" in normalized:
        return "recursive"
    if "*" in normalized:
        return "wildcard"
    return "exact"


def _examples(normalized: str, kind: PatternKind) -> list[str]:
    """Build illustrative paths for the admin preview."""
    if kind == "recursive":
        base = normalized.replace("**", "").rstrip("/")
        return [base + suffix for suffix in _RECURSIVE_EXAMPLE_SUFFIXES]
    if kind == "wildcard":
        parts = normalized.split("*")
        # Multi-wildcard patterns get no preview.
        if len(parts) != 2:
            return []
        prefix, suffix = parts
        return [prefix + fill + suffix for fill in _WILDCARD_EXAMPLE_FILLS]
    return [normalized]


def validate(pattern: object) -> ValidationResult:
    """Validate and normalise a user-supplied pattern.

    Rules are applied in order and the first failure is reported.
    Never raises; every failure is returned as an invalid result.
    """
    if not isinstance(pattern, str) or not pattern.strip():
        return ValidationResult.invalid("empty", MESSAGE_EMPTY)

    candidate = pattern.strip()

    if not candidate.startswith("/"):
        return ValidationResult.invalid("no_leading_slash", MESSAGE_NO_LEADING_SLASH)
    if _INVALID_CHARACTERS.search(candidate):
        return ValidationResult.invalid("invalid_characters", MESSAGE_INVALID_CHARACTERS)
    if "//" in candidate:
        return ValidationResult.invalid("consecutive_slashes", MESSAGE_CONSECUTIVE_SLASHES)
    if _EXCESS_WILDCARD.search(candidate):
        return ValidationResult.invalid("excess_wildcard", MESSAGE_EXCESS_WILDCARD)
    if "**" in candidate and not candidate.endswith("**"):
        return ValidationResult.invalid("misplaced_double_wildcard", MESSAGE_MISPLACED_DOUBLE_WILDCARD)

    normalized = normalize(candidate)
    kind = pattern_kind(normalized)
    return ValidationResult(
        valid=True,
        message=MESSAGE_VALID,
        normalized=normalized,
        kind=kind,
        examples=_examples(normalized, kind),
    )


def validate_patterns(patterns: object) -> dict[str, ValidationResult]:
    """Validate several patterns, keyed by the raw input string."""
    if not isinstance(patterns, (list, tuple)):
        return {}
    return {str(p): validate(p) for p in patterns}


# ============================================================================
# Matching
# ============================================================================


@functools.lru_cache(maxsize=256)
def to_matcher(normalized: str) -> re.Pattern[str]:
    """Translate a normalised pattern into a compiled, fully anchored regex.

    ``**`` has to be substituted before ``*`` or it would turn into two
    single-segment wildcards.
    """
    escaped = re.escape(normalized)
    escaped = escaped.replace(r"\*\*", ".*")
    escaped = escaped.replace(r"\*", "[^/]*")
    return re.compile(rf"\A{escaped}\Z")


def matches(path: str, normalized: str) -> bool:
    """Check whether a URL or bare path matches an already validated pattern."""
    return to_matcher(normalized).match(url.extract_path(path)) is not None


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    """Return True if the path matches any of the stored patterns."""
    request_path = url.extract_path(path)
    return any(to_matcher(p).match(request_path) is not None for p in patterns)


def evaluate_pattern(pattern: str, target_url: str) -> PatternTestResult:
    """Validate *pattern* and, if valid, test *target_url* against it."""
    validation = validate(pattern)
    if not validation.valid:
        return PatternTestResult(
            valid=False,
            matches=False,
            message=validation.message,
            url=target_url,
        )

    matched = matches(target_url, validation.normalized)
    return PatternTestResult(
        valid=True,
        matches=matched,
        normalized=validation.normalized,
        message=MESSAGE_MATCH if matched else MESSAGE_NO_MATCH,
        url=target_url,
    )
