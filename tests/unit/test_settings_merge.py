"""Unit tests for the user settings deep merge."""

from __future__ import annotations

import pytest

from learnhub.users.settings_service import (
    DEFAULT_SETTINGS,
    SettingsValidationError,
    deep_merge,
    default_section,
)


def _merge(section: str, current: dict, patch: dict) -> dict:
    return deep_merge(DEFAULT_SETTINGS[section], current, patch, section)


class TestDeepMerge:
    def test_empty_current_yields_defaults(self):
        assert _merge("privacy", {}, {}) == DEFAULT_SETTINGS["privacy"]

    def test_nested_patch_keeps_siblings(self):
        merged = _merge("notifications", default_section("notifications"), {"email": {"marketing": True}})
        assert merged["email"]["marketing"] is True
        assert merged["email"]["enabled"] is True
        assert merged["push"] == DEFAULT_SETTINGS["notifications"]["push"]

    def test_existing_values_survive(self):
        current = default_section("preferences")
        current["language"] = "fr"
        merged = _merge("preferences", current, {"darkMode": True})
        assert merged["language"] == "fr"
        assert merged["darkMode"] is True

    def test_unknown_key_rejected(self):
        with pytest.raises(SettingsValidationError, match="Unknown setting: privacy.shoeSize"):
            _merge("privacy", {}, {"shoeSize": 42})

    def test_type_checked(self):
        with pytest.raises(SettingsValidationError, match="must be a boolean"):
            _merge("privacy", {}, {"showProgress": "yes"})

    def test_bool_is_not_an_integer(self):
        with pytest.raises(SettingsValidationError, match="must be an integer"):
            _merge("security", {}, {"sessionTimeout": True})

    def test_enumerated_values(self):
        with pytest.raises(SettingsValidationError, match="must be one of"):
            _merge("privacy", {}, {"profileVisibility": "everyone"})

    def test_session_timeout_range(self):
        with pytest.raises(SettingsValidationError, match="between 5 and 1440"):
            _merge("security", {}, {"sessionTimeout": 2})
        assert _merge("security", {}, {"sessionTimeout": 60})["sessionTimeout"] == 60

    def test_defaults_not_mutated(self):
        _merge("notifications", {}, {"sms": {"enabled": True}})
        assert DEFAULT_SETTINGS["notifications"]["sms"]["enabled"] is False
