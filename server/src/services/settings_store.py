"""JSON-file backed store for the tracking settings document.

The whole document lives in a single JSON file.  Reads merge the
stored values over the defaults so newly added keys always resolve.
Updates are deep-merged into the current document (nested mappings
are merged, lists are replaced), sanitised through the settings
model and written atomically via a temp file and ``os.replace``.

Patterns are always validated before they are persisted, so callers
at request time can match against stored patterns without
re-validating them.
"""

from __future__ import annotations

import contextlib
import json
import os
import pathlib
import threading
from typing import Any

import pydantic

from src.models.settings import TrackingSettings
from src.tracking import patterns
from src.utils import errors, logger, url

log = logger.create_logger("SettingsStore")

MIN_DEBOUNCE_DELAY = 100
MAX_DEBOUNCE_DELAY = 2000

_PATTERN_FIELDS = ("skip_patterns", "mask_patterns")


def _deep_merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Merge *update* into a copy of *base*, recursing into nested dicts."""
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate_settings(new_settings: dict[str, Any]) -> dict[str, str]:
    """Check an incoming (possibly partial) settings update.

    Returns:
        A mapping of field name to error message; empty when valid.
    """
    problems: dict[str, str] = {}

    if new_settings.get("connected") and not new_settings.get("site_id"):
        problems["site_id"] = "Site ID is required when connection is enabled."

    if "script_url" in new_settings and not url.is_http_url(new_settings["script_url"]):
        problems["script_url"] = "Script URL must be a valid URL."

    if "debounce_delay" in new_settings:
        try:
            delay = abs(int(new_settings["debounce_delay"]))
        except (TypeError, ValueError, OverflowError):
            delay = 0
        if not MIN_DEBOUNCE_DELAY <= delay <= MAX_DEBOUNCE_DELAY:
            problems["debounce_delay"] = (
                f"Debounce delay must be between {MIN_DEBOUNCE_DELAY} and {MAX_DEBOUNCE_DELAY} milliseconds."
            )

    for field in _PATTERN_FIELDS:
        if field not in new_settings:
            continue
        values = new_settings[field]
        if not isinstance(values, list):
            problems[field] = "Patterns must be provided as a list."
            continue
        for value in values:
            result = patterns.validate(value)
            if not result.valid:
                problems[field] = f'Invalid pattern "{value}": {result.message}'
                break

    return problems


class SettingsStore:
    """CRUD access to the persisted settings document."""

    def __init__(self, path: pathlib.Path) -> None:
        """Create a store backed by the JSON file at *path*."""
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> pathlib.Path:
        """Location of the settings document."""
        return self._path

    def get_settings(self) -> TrackingSettings:
        """Load the stored settings merged over the defaults.

        A missing, unreadable or malformed document yields the
        defaults; the latter two are logged.
        """
        if not self._path.exists():
            return TrackingSettings()

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("settings document is not a JSON object")
            return TrackingSettings.model_validate(data)
        except (OSError, ValueError) as exc:
            # json.JSONDecodeError and pydantic.ValidationError are ValueErrors.
            log.warn(
                "Failed to load settings, using defaults",
                {"path": str(self._path), "error": errors.get_error_message(exc)},
            )
            return TrackingSettings()

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Look up a single value; dotted keys descend into nested groups."""
        value: Any = self.get_settings().model_dump()
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def update_settings(self, new_settings: dict[str, Any]) -> TrackingSettings:
        """Validate, merge, sanitise and persist a settings update.

        Raises:
            SettingsValidationError: If the update is rejected.
            SettingsPersistenceError: If the document cannot be written.
        """
        problems = validate_settings(new_settings)
        if problems:
            log.warn("Settings update rejected", {"fields": sorted(problems)})
            raise errors.SettingsValidationError(problems)

        with self._lock:
            merged = _deep_merge(self.get_settings().model_dump(), new_settings)
            try:
                settings = TrackingSettings.model_validate(merged)
            except pydantic.ValidationError as exc:
                problems = {
                    ".".join(str(p) for p in err["loc"]): err["msg"]
                    for err in exc.errors()
                }
                log.warn("Settings update rejected", {"fields": sorted(problems)})
                raise errors.SettingsValidationError(problems) from exc
            self._write(settings)

        log.success(
            "Settings updated",
            {
                "siteId": settings.site_id,
                "skipPatterns": settings.skip_patterns,
                "maskPatterns": settings.mask_patterns,
            },
        )
        return settings

    def reset_settings(self) -> TrackingSettings:
        """Overwrite the stored document with the defaults."""
        settings = TrackingSettings()
        with self._lock:
            self._write(settings)
        log.info("Settings reset to defaults", {"path": str(self._path)})
        return settings

    def delete_settings(self) -> bool:
        """Remove the stored document.

        Returns:
            True if a document existed and was removed.
        """
        with self._lock:
            existed = self._path.exists()
            try:
                self._path.unlink(missing_ok=True)
            except OSError as exc:
                raise errors.SettingsPersistenceError(errors.get_error_message(exc)) from exc
        if existed:
            log.info("Settings deleted", {"path": str(self._path)})
        return existed

    def _write(self, settings: TrackingSettings) -> None:
        """Atomically write *settings* to disk."""
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            log.error(
                "Failed to write settings",
                {"path": str(self._path), "error": errors.get_error_message(exc)},
            )
            raise errors.SettingsPersistenceError(errors.get_error_message(exc)) from exc
