import json

import pytest

from errors import ConfigError
from settings import DEFAULTS, SettingsStore


@pytest.fixture
def store(tmp_path, monkeypatch):
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GOOGLE_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    return SettingsStore(str(tmp_path / "settings.json"))


def test_defaults_when_file_missing(store):
    settings = store.load()
    assert settings == DEFAULTS
    assert settings is not DEFAULTS
    assert settings["api_keys"] is not DEFAULTS["api_keys"]


def test_saved_values_merge_over_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_retries": 5, "api_keys": {"openai": "sk-1"}}))

    settings = SettingsStore(str(path)).load()

    assert settings["max_retries"] == 5
    assert settings["api_keys"] == {"anthropic": "", "openai": "sk-1", "google": ""}
    assert settings["include_comp_context"] is True


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{oops")
    assert SettingsStore(str(path)).load() == DEFAULTS


def test_set_persists(store):
    store.set("max_retries", 4)
    assert json.loads(open(store.path).read())["max_retries"] == 4
    assert SettingsStore(store.path).get("max_retries") == 4


def test_api_keys(store, monkeypatch):
    assert store.has_api_key() is False
    store.set_api_key("anthropic", "sk-ant")
    assert store.get_api_key() == "sk-ant"
    assert store.has_api_key("google") is False

    monkeypatch.setenv("GOOGLE_API_KEY", "env-key")
    assert store.get_api_key("google") == "env-key"


def test_model_selection(store):
    store.set_model_selection("openai")
    assert store.get_model_selection() == {"provider": "openai", "model": "gpt-4.1"}

    store.set_model_selection("google", "gemini-2.5-pro")
    assert store.get_model_selection() == {"provider": "google", "model": "gemini-2.5-pro"}


def test_model_selection_rejects_unknown_provider(store):
    with pytest.raises(ConfigError):
        store.set_model_selection("cohere", "command-r")


def test_reset(store):
    store.set("max_retries", 9)
    store.reset()
    assert SettingsStore(store.path).load()["max_retries"] == DEFAULTS["max_retries"]
