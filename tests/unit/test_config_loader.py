"""Unit tests for configuration loading."""

import json

import pytest
from pydantic import ValidationError

from blueprint_chat.config.loader import CONFIG_PATH_ENV, load_config

CONFIG = {
    "llmConfig": {
        "models": {
            "intent": {"provider": "openrouter", "modelName": "m", "temperature": 0},
            "qa": {"provider": "openrouter", "modelName": "m"},
        }
    },
    "providerConfig": {"openRouterApiKey": "${TEST_OPENROUTER_KEY}"},
    "retrievalConfig": {"provider": "supabase", "matchCount": 4},
}


def write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_config_resolves_env_and_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_OPENROUTER_KEY", "sk-test")

    config = load_config(write(tmp_path / "config.json", CONFIG))

    assert config.provider_config.openrouter_api_key == "sk-test"
    assert config.llm_config.models["intent"].temperature == 0
    assert config.llm_config.models["qa"].max_tokens == 1024
    assert config.retrieval_config.match_count == 4
    assert config.retrieval_config.match_threshold == 0.65
    assert config.store_config.provider == "file"
    assert config.resilience.call_timeout_seconds is None
    assert config.server.request_timeout_seconds == 120


def test_unset_env_placeholder_is_kept(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_OPENROUTER_KEY", raising=False)

    config = load_config(write(tmp_path / "config.json", CONFIG))

    assert config.provider_config.openrouter_api_key == "${TEST_OPENROUTER_KEY}"


def test_config_path_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv(CONFIG_PATH_ENV, str(write(tmp_path / "custom.json", CONFIG)))

    assert "qa" in load_config().llm_config.models


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.json")


def test_non_object_config(tmp_path):
    with pytest.raises(ValueError, match="JSON object"):
        load_config(write(tmp_path / "config.json", ["not", "an", "object"]))


def test_invalid_threshold(tmp_path):
    bad = {**CONFIG, "retrievalConfig": {"matchThreshold": 1.5}}
    with pytest.raises(ValidationError):
        load_config(write(tmp_path / "config.json", bad))
