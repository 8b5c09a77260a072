"""Pydantic models for the persisted tracking settings document.

Every field carries its default so that a partially stored document
(or none at all) always validates into a complete settings object.
Validators apply the same sanitisation on load and on save.
"""

from __future__ import annotations

import re

import pydantic

from src.tracking import patterns

DEFAULT_SCRIPT_URL = "https://app.rybbit.io/api/script.js"
DEFAULT_DEBOUNCE_DELAY = 500

VALID_ROLES = ("administrator", "editor", "author", "contributor", "subscriber")

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(value: str) -> str:
    """Strip markup, collapse whitespace and trim a free-text value."""
    return _WHITESPACE_RE.sub(" ", _TAG_RE.sub("", value)).strip()


def clean_patterns(values: list[str]) -> list[str]:
    """Normalise a pattern list, dropping invalid entries and duplicates."""
    cleaned: list[str] = []
    for value in values:
        result = patterns.validate(clean_text(value))
        if result.valid and result.normalized not in cleaned:
            cleaned.append(result.normalized)
    return cleaned


class WooCommerceEvents(pydantic.BaseModel):
    """Which shop lifecycle events are emitted."""

    view_item: bool = True
    add_to_cart: bool = True
    begin_checkout: bool = True
    purchase: bool = True


class WooCommerceSettings(pydantic.BaseModel):
    """Shop integration toggle and per-event switches."""

    enabled: bool = False
    events: WooCommerceEvents = pydantic.Field(default_factory=WooCommerceEvents)


class DashboardFeatures(pydantic.BaseModel):
    """Client-side tracker features mirrored from the analytics dashboard."""

    spa_tracking: bool = True
    outbound_links: bool = True
    error_tracking: bool = False
    session_replay: bool = False
    web_vitals: bool = False


class UserIdentification(pydantic.BaseModel):
    """How logged-in users are identified to the tracker."""

    enabled: bool = False
    identifier_type: str = "user_id"
    identify_on: str = "login"
    clear_on_logout: bool = True

    @pydantic.field_validator("identifier_type", "identify_on")
    @classmethod
    def _clean(cls, value: str) -> str:
        return clean_text(value)


class Exclusion(pydantic.BaseModel):
    """A single post/page excluded from tracking."""

    type: str = ""
    post_type: str = ""
    post_id: int = 0

    @pydantic.field_validator("type", "post_type")
    @classmethod
    def _clean(cls, value: str) -> str:
        return clean_text(value)

    @pydantic.field_validator("post_id")
    @classmethod
    def _absolute(cls, value: int) -> int:
        return abs(value)


class TrackingSettings(pydantic.BaseModel):
    """The complete plugin settings document."""

    site_id: str = ""
    script_url: str = DEFAULT_SCRIPT_URL
    connected: bool = False
    skip_patterns: list[str] = pydantic.Field(default_factory=lambda: ["/wp-admin/**", "/wp-login.php"])
    mask_patterns: list[str] = pydantic.Field(default_factory=list)
    replay_mask_selectors: list[str] = pydantic.Field(default_factory=list)
    debounce_delay: int = DEFAULT_DEBOUNCE_DELAY
    woocommerce: WooCommerceSettings = pydantic.Field(default_factory=WooCommerceSettings)
    dashboard_features: DashboardFeatures = pydantic.Field(default_factory=DashboardFeatures)
    user_identification: UserIdentification = pydantic.Field(default_factory=UserIdentification)
    exclude_roles: list[str] = pydantic.Field(default_factory=lambda: ["administrator", "editor"])
    exclusions: list[Exclusion] = pydantic.Field(default_factory=list)

    @pydantic.field_validator("site_id", "script_url")
    @classmethod
    def _clean_text(cls, value: str) -> str:
        return clean_text(value)

    @pydantic.field_validator("skip_patterns", "mask_patterns")
    @classmethod
    def _clean_patterns(cls, value: list[str]) -> list[str]:
        return clean_patterns(value)

    @pydantic.field_validator("replay_mask_selectors")
    @classmethod
    def _clean_selectors(cls, value: list[str]) -> list[str]:
        return [s for s in (clean_text(v) for v in value) if s]

    @pydantic.field_validator("debounce_delay")
    @classmethod
    def _absolute(cls, value: int) -> int:
        return abs(value)

    @pydantic.field_validator("exclude_roles")
    @classmethod
    def _known_roles(cls, value: list[str]) -> list[str]:
        roles: list[str] = []
        for role in value:
            role = clean_text(role)
            if role in VALID_ROLES and role not in roles:
                roles.append(role)
        return roles
