"""
Tests for the Settings Context

Tests for openjourney/core/settings.py
"""

import json

import pytest

from openjourney.core.constants import (
    KEY_DARK_MODE,
    KEY_FAL_API_KEY,
    KEY_GEMINI_API_KEY,
    KEY_MODEL_VARIANT,
    KEY_PROVIDER,
    ProviderKind,
)
from openjourney.core.exceptions import ConfigurationError
from openjourney.core import settings as settings_module
from openjourney.core.settings import (
    JsonFileStore,
    MemoryStore,
    ProviderSettings,
    SettingsContext,
    parse_provider,
)


class TestLoading:

    def test_defaults_when_store_empty(self, settings):
        assert settings.provider_settings == ProviderSettings(ProviderKind.GOOGLE, "default")
        assert settings.dark_mode is False

    def test_loads_stored_preferences(self):
        store = MemoryStore({
            KEY_PROVIDER: "fal",
            KEY_MODEL_VARIANT: "fal-ai/flux-pro/kontext",
            KEY_DARK_MODE: "true",
        })

        context = SettingsContext(store, use_env=False)

        assert context.provider == ProviderKind.FAL
        assert context.provider_settings.model_variant == "fal-ai/flux-pro/kontext"
        assert context.dark_mode is True

    def test_unknown_stored_provider_falls_back_to_primary(self):
        context = SettingsContext(MemoryStore({KEY_PROVIDER: "midjourney"}), use_env=False)
        assert context.provider == ProviderKind.GOOGLE

    def test_parse_provider_aliases(self):
        assert parse_provider("primary") == ProviderKind.GOOGLE
        assert parse_provider("secondary") == ProviderKind.FAL
        assert parse_provider(" FAL ") == ProviderKind.FAL
        with pytest.raises(ConfigurationError):
            parse_provider("dalle")


class TestMutation:

    def test_update_persists_to_store(self):
        store = MemoryStore()
        context = SettingsContext(store, use_env=False)

        context.update(provider="fal", model_variant="fal-ai/flux/dev", dark_mode=True)

        assert store.get(KEY_PROVIDER) == "fal"
        assert store.get(KEY_MODEL_VARIANT) == "fal-ai/flux/dev"
        assert store.get(KEY_DARK_MODE) == "true"
        # A fresh context sees the same values
        assert SettingsContext(store, use_env=False).provider == ProviderKind.FAL

    def test_set_and_clear_api_key(self):
        store = MemoryStore()
        context = SettingsContext(store, use_env=False)

        context.set_api_key(ProviderKind.GOOGLE, "  abc  ")
        assert store.get(KEY_GEMINI_API_KEY) == "abc"
        assert context.has_api_key(ProviderKind.GOOGLE)
        assert not context.has_api_key(ProviderKind.FAL)

        context.clear_api_key("google")
        assert store.get(KEY_GEMINI_API_KEY) is None

    def test_blank_key_clears(self):
        store = MemoryStore({KEY_FAL_API_KEY: "old"})
        context = SettingsContext(store, use_env=False)

        context.set_api_key("fal", "   ")

        assert store.get(KEY_FAL_API_KEY) is None

    def test_public_dict_never_contains_keys(self, keyed_settings):
        public = keyed_settings.to_public_dict()

        assert public["hasApiKey"] == {"google": True, "fal": True}
        assert "stored-google-key" not in json.dumps(public)


class TestCredentialResolution:

    def test_explicit_beats_stored(self, keyed_settings):
        assert keyed_settings.resolve_api_key(ProviderKind.GOOGLE, explicit="explicit") == "explicit"

    def test_stored_used_when_no_explicit(self, keyed_settings):
        assert keyed_settings.resolve_api_key(ProviderKind.GOOGLE) == "stored-google-key"
        assert keyed_settings.resolve_api_key(ProviderKind.FAL, explicit="  ") == "stored-fal-key"

    def test_environment_is_last_resort(self, monkeypatch):
        monkeypatch.setattr(settings_module, "_ENV_LOOKUPS", {
            ProviderKind.GOOGLE: lambda: "env-google",
            ProviderKind.FAL: lambda: None,
        })
        context = SettingsContext(MemoryStore(), use_env=True)

        assert context.resolve_api_key(ProviderKind.GOOGLE) == "env-google"
        assert context.resolve_api_key(ProviderKind.FAL) is None

    def test_no_environment_when_disabled(self, settings):
        assert settings.resolve_api_key(ProviderKind.GOOGLE) is None


class TestSubscriptions:

    def test_listeners_receive_changes(self, settings):
        events = []
        unsubscribe = settings.subscribe(lambda event, ctx: events.append((event, ctx.provider)))

        settings.update(provider="fal")
        settings.set_api_key("fal", "k")
        unsubscribe()
        settings.update(provider="google")

        assert events == [("settings", ProviderKind.FAL), ("api_key", ProviderKind.FAL)]

    def test_listener_errors_are_contained(self, settings):
        def broken(event, ctx):
            raise RuntimeError("boom")

        settings.subscribe(broken)
        settings.update(dark_mode=True)

        assert settings.dark_mode is True


class TestJsonFileStore:

    def test_round_trips_through_disk(self, temp_dir):
        path = temp_dir / "config" / "settings.json"
        store = JsonFileStore(path)
        store.set(KEY_PROVIDER, "fal")
        store.set(KEY_FAL_API_KEY, "secret")
        store.delete(KEY_FAL_API_KEY)

        reloaded = JsonFileStore(path)

        assert reloaded.get(KEY_PROVIDER) == "fal"
        assert reloaded.get(KEY_FAL_API_KEY) is None

    def test_invalid_file_raises(self, temp_dir):
        path = temp_dir / "settings.json"
        path.write_text("[1, 2]")

        with pytest.raises(ConfigurationError):
            JsonFileStore(path)
