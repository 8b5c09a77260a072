"""Tests for src.services.settings_store — persistence, merge and validation.

File I/O goes through ``tmp_path`` via the ``store`` fixture.
"""

from __future__ import annotations

import json
import pathlib
from unittest import mock

import pytest

from src.services import settings_store
from src.services.settings_store import SettingsStore
from src.utils import errors

# ── validate_settings ───────────────────────────────────────────


class TestValidateSettings:
    """Tests for settings_store.validate_settings()."""

    def test_empty_update_is_valid(self) -> None:
        assert settings_store.validate_settings({}) == {}

    def test_connected_requires_site_id(self) -> None:
        problems = settings_store.validate_settings({"connected": True})
        assert "site_id" in problems

    def test_connected_with_site_id(self) -> None:
        assert settings_store.validate_settings({"connected": True, "site_id": "abc"}) == {}

    @pytest.mark.parametrize("value", ["not a url", "ftp://example.com/s.js", "https://", 42])
    def test_invalid_script_url(self, value: object) -> None:
        assert "script_url" in settings_store.validate_settings({"script_url": value})

    def test_valid_script_url(self) -> None:
        assert settings_store.validate_settings({"script_url": "https://stats.example.com/api/script.js"}) == {}

    @pytest.mark.parametrize("value", [99, 2001, "abc", None, float("inf"), float("-inf")])
    def test_debounce_out_of_range(self, value: object) -> None:
        assert "debounce_delay" in settings_store.validate_settings({"debounce_delay": value})

    @pytest.mark.parametrize("value", [100, 500, 2000, "1500"])
    def test_debounce_in_range(self, value: object) -> None:
        assert settings_store.validate_settings({"debounce_delay": value}) == {}

    def test_invalid_skip_pattern(self) -> None:
        problems = settings_store.validate_settings({"skip_patterns": ["/ok", "/admin/**/users"]})
        assert "skip_patterns" in problems
        assert "/admin/**/users" in problems["skip_patterns"]
        assert "end of a pattern" in problems["skip_patterns"]

    def test_invalid_mask_pattern(self) -> None:
        problems = settings_store.validate_settings({"mask_patterns": ["checkout"]})
        assert "forward slash" in problems["mask_patterns"]

    def test_patterns_must_be_a_list(self) -> None:
        problems = settings_store.validate_settings({"skip_patterns": "/wp-admin/**"})
        assert "skip_patterns" in problems


# ── Deep merge ──────────────────────────────────────────────────


class TestDeepMerge:
    """Tests for settings_store._deep_merge()."""

    def test_nested_mappings_merge(self) -> None:
        base = {"woocommerce": {"enabled": False, "events": {"purchase": True, "add_to_cart": True}}}
        update = {"woocommerce": {"events": {"purchase": False}}}
        merged = settings_store._deep_merge(base, update)
        assert merged == {"woocommerce": {"enabled": False, "events": {"purchase": False, "add_to_cart": True}}}

    def test_lists_are_replaced(self) -> None:
        merged = settings_store._deep_merge({"skip_patterns": ["/a", "/b"]}, {"skip_patterns": ["/c"]})
        assert merged["skip_patterns"] == ["/c"]

    def test_base_not_mutated(self) -> None:
        base = {"nested": {"x": 1}}
        settings_store._deep_merge(base, {"nested": {"x": 2}})
        assert base == {"nested": {"x": 1}}


# ── SettingsStore ───────────────────────────────────────────────


class TestGetSettings:
    """Tests for SettingsStore.get_settings()."""

    def test_defaults_when_missing(self, store: SettingsStore) -> None:
        s = store.get_settings()
        assert s.skip_patterns == ["/wp-admin/**", "/wp-login.php"]
        assert not store.path.exists()

    def test_partial_document_merged_over_defaults(self, store: SettingsStore, settings_path: pathlib.Path) -> None:
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text(json.dumps({"site_id": "abc"}), encoding="utf-8")
        s = store.get_settings()
        assert s.site_id == "abc"
        assert s.debounce_delay == 500

    def test_corrupt_document_yields_defaults(self, store: SettingsStore, settings_path: pathlib.Path) -> None:
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("{not json", encoding="utf-8")
        assert store.get_settings().site_id == ""

    def test_non_object_document_yields_defaults(self, store: SettingsStore, settings_path: pathlib.Path) -> None:
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("[1, 2, 3]", encoding="utf-8")
        assert store.get_settings().site_id == ""


class TestGetSetting:
    """Tests for SettingsStore.get_setting()."""

    def test_top_level_key(self, store: SettingsStore) -> None:
        assert store.get_setting("debounce_delay") == 500

    def test_dotted_key(self, store: SettingsStore) -> None:
        assert store.get_setting("woocommerce.events.view_item") is True

    def test_missing_key_returns_default(self, store: SettingsStore) -> None:
        assert store.get_setting("nope", "fallback") == "fallback"

    def test_missing_nested_key_returns_default(self, store: SettingsStore) -> None:
        assert store.get_setting("woocommerce.nope.deeper", 7) == 7

    def test_descending_into_scalar_returns_default(self, store: SettingsStore) -> None:
        assert store.get_setting("site_id.length") is None


class TestUpdateSettings:
    """Tests for SettingsStore.update_settings()."""

    def test_persists_and_returns(self, store: SettingsStore) -> None:
        s = store.update_settings({"site_id": "site-1", "connected": True})
        assert s.site_id == "site-1"
        stored = json.loads(store.path.read_text(encoding="utf-8"))
        assert stored["site_id"] == "site-1"
        assert stored["connected"] is True

    def test_patterns_stored_normalised(self, store: SettingsStore) -> None:
        store.update_settings({"skip_patterns": ["/members/", " /shop/** "]})
        assert store.get_settings().skip_patterns == ["/members", "/shop/**"]

    def test_nested_update_keeps_siblings(self, store: SettingsStore) -> None:
        store.update_settings({"woocommerce": {"enabled": True}})
        s = store.get_settings()
        assert s.woocommerce.enabled is True
        assert s.woocommerce.events.purchase is True

    def test_list_update_replaces(self, store: SettingsStore) -> None:
        store.update_settings({"skip_patterns": ["/a", "/b"]})
        store.update_settings({"skip_patterns": ["/c"]})
        assert store.get_settings().skip_patterns == ["/c"]

    def test_invalid_pattern_rejected_and_not_persisted(self, store: SettingsStore) -> None:
        with pytest.raises(errors.SettingsValidationError) as exc_info:
            store.update_settings({"skip_patterns": ["/admin/***"]})
        assert "skip_patterns" in exc_info.value.errors
        assert not store.path.exists()

    def test_model_type_errors_are_validation_errors(self, store: SettingsStore) -> None:
        with pytest.raises(errors.SettingsValidationError) as exc_info:
            store.update_settings({"woocommerce": {"enabled": "maybe"}})
        assert "woocommerce.enabled" in exc_info.value.errors

    def test_write_failure_raises_persistence_error(self, store: SettingsStore) -> None:
        with mock.patch("pathlib.Path.write_text", side_effect=OSError("read-only filesystem")):
            with pytest.raises(errors.SettingsPersistenceError):
                store.update_settings({"site_id": "abc"})

    def test_no_temp_file_left_behind(self, store: SettingsStore) -> None:
        store.update_settings({"site_id": "abc"})
        assert [p.name for p in store.path.parent.iterdir()] == ["settings.json"]

    def test_temp_file_removed_when_replace_fails(self, store: SettingsStore) -> None:
        with mock.patch("os.replace", side_effect=OSError("cross-device link")):
            with pytest.raises(errors.SettingsPersistenceError):
                store.update_settings({"site_id": "abc"})
        assert list(store.path.parent.iterdir()) == []


class TestResetAndDelete:
    """Tests for SettingsStore.reset_settings() and delete_settings()."""

    def test_reset_restores_defaults(self, store: SettingsStore) -> None:
        store.update_settings({"site_id": "abc", "skip_patterns": []})
        store.reset_settings()
        s = store.get_settings()
        assert s.site_id == ""
        assert s.skip_patterns == ["/wp-admin/**", "/wp-login.php"]

    def test_delete_existing(self, store: SettingsStore) -> None:
        store.update_settings({"site_id": "abc"})
        assert store.delete_settings() is True
        assert not store.path.exists()

    def test_delete_missing(self, store: SettingsStore) -> None:
        assert store.delete_settings() is False
