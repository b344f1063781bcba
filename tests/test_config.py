"""Test settings stores and configuration resolution."""

import json

import pytest

from autoqa.config import (
    CREDENTIAL,
    HOSTED_MODEL_NAME,
    LOCAL_MODEL_NAME,
    LOCAL_MODEL_URL,
    InMemorySettingsStore,
    JsonFileSettingsStore,
    get_setting,
    resolve_credential,
    resolve_hosted_model,
    resolve_local_endpoint,
    save_setting,
)
from autoqa.exceptions import ConfigurationError
from autoqa.models import ProviderKind, ProviderSelection


class TestJsonFileSettingsStore:

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileSettingsStore(tmp_path / "settings.json")

        assert store.get(CREDENTIAL) is None

    def test_set_persists(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        store = JsonFileSettingsStore(path)

        store.set(CREDENTIAL, "AIzaSy-test")

        assert json.loads(path.read_text(encoding="utf-8")) == {CREDENTIAL: "AIzaSy-test"}
        assert JsonFileSettingsStore(path).get(CREDENTIAL) == "AIzaSy-test"

    def test_external_edits_visible(self, tmp_path):
        path = tmp_path / "settings.json"
        store = JsonFileSettingsStore(path)
        store.set(LOCAL_MODEL_NAME, "deepseek-r1")

        path.write_text(json.dumps({LOCAL_MODEL_NAME: "qwen2.5"}), encoding="utf-8")

        assert store.get(LOCAL_MODEL_NAME) == "qwen2.5"

    def test_delete(self, tmp_path):
        store = JsonFileSettingsStore(tmp_path / "settings.json")
        store.set(CREDENTIAL, "k")

        store.delete(CREDENTIAL)
        store.delete("never-set")

        assert store.get(CREDENTIAL) is None

    def test_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "env-settings.json"
        monkeypatch.setenv("AUTOQA_SETTINGS_FILE", str(path))

        assert JsonFileSettingsStore().path == path

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            JsonFileSettingsStore(path).get(CREDENTIAL)

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            JsonFileSettingsStore(path).get(CREDENTIAL)


class TestResolution:

    def test_module_documents_merge_order(self):
        import autoqa.config

        assert "defaults" in autoqa.config.__doc__
        assert "GEMINI_API_KEY" in autoqa.config.__doc__

    def test_defaults(self, settings):
        assert get_setting(settings, LOCAL_MODEL_URL) == "http://localhost:11434/v1/chat/completions"
        assert get_setting(settings, LOCAL_MODEL_NAME) == "deepseek-r1"
        assert get_setting(settings, CREDENTIAL) is None

    def test_blank_setting_means_default(self):
        store = InMemorySettingsStore({LOCAL_MODEL_NAME: "   "})

        assert get_setting(store, LOCAL_MODEL_NAME) == "deepseek-r1"

    def test_save_blank_removes_key(self):
        store = InMemorySettingsStore({HOSTED_MODEL_NAME: "gemini-x"})

        save_setting(store, HOSTED_MODEL_NAME, "  ")

        assert store.as_dict() == {}

    def test_save_trims(self, settings):
        save_setting(settings, LOCAL_MODEL_URL, "  http://127.0.0.1:1234/v1/chat/completions ")

        assert settings.get(LOCAL_MODEL_URL) == "http://127.0.0.1:1234/v1/chat/completions"

    def test_stored_credential_beats_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")

        assert resolve_credential(InMemorySettingsStore({CREDENTIAL: "user-key"})) == "user-key"

    def test_credential_environment_order(self, settings, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")
        monkeypatch.setenv("API_KEY", "generic-key")

        assert resolve_credential(settings) == "gemini-key"

        monkeypatch.delenv("GEMINI_API_KEY")
        assert resolve_credential(settings) == "generic-key"

    def test_no_credential(self, settings, no_credential_env):
        assert resolve_credential(settings) is None

    def test_local_endpoint_merge_order(self):
        store = InMemorySettingsStore({LOCAL_MODEL_URL: "http://lan-box:11434/v1/chat/completions"})

        assert resolve_local_endpoint(store) == ("http://lan-box:11434/v1/chat/completions", "deepseek-r1")

        selection = ProviderSelection(kind=ProviderKind.LOCAL_CUSTOM, model="llama3", endpoint_url=" ")
        assert resolve_local_endpoint(store, selection) == ("http://lan-box:11434/v1/chat/completions", "llama3")

    def test_hosted_model_override(self, settings):
        assert resolve_hosted_model(settings) == "gemini-3-flash-preview"
        assert resolve_hosted_model(settings, ProviderSelection(model="gemini-2.5-pro")) == "gemini-2.5-pro"
