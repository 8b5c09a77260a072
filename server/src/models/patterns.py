"""Pydantic models for URL pattern validation and testing."""

from __future__ import annotations

from typing import Literal

import pydantic

PatternKind = Literal["exact", "wildcard", "recursive"]

PatternErrorCode = Literal[
    "empty",
    "no_leading_slash",
    "invalid_characters",
    "consecutive_slashes",
    "excess_wildcard",
    "misplaced_double_wildcard",
]


class ValidationResult(pydantic.BaseModel):
    """Outcome of validating a single exclusion/masking pattern.

    ``examples`` is only used for the admin UI preview and carries
    no matching semantics.
    """

    valid: bool
    message: str
    normalized: str = ""
    kind: PatternKind | None = None
    examples: list[str] = pydantic.Field(default_factory=list)
    error: PatternErrorCode | None = None

    @classmethod
    def invalid(cls, error: PatternErrorCode, message: str) -> ValidationResult:
        """Return a failed validation result."""
        return cls(valid=False, message=message, error=error)


class PatternTestResult(pydantic.BaseModel):
    """Result of testing a URL against a candidate pattern."""

    valid: bool
    matches: bool
    normalized: str = ""
    message: str
    url: str = ""
