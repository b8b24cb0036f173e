"""Tests for config schema and loading."""

import json

import pytest
from pydantic import ValidationError

from notebot.config.loader import load_config, save_config
from notebot.config.schema import Config


def test_defaults():
    config = Config()
    assert config.agent.max_turns == 10
    assert config.agent.max_history == 20
    assert config.notes.cache_capacity == 100
    assert config.notes.max_concurrency == 5
    assert config.storage.backend == "local"
    assert config.vector.collection_prefix == ""


def test_camel_case_keys(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "agent": {"maxTurns": 4, "maxHistory": 8},
                "notes": {"cacheCapacity": 7, "maxConcurrency": 2},
                "storage": {"backend": "autodrive", "autoDrive": {"apiKey": "ad-key"}},
                "channels": {"telegram": {"enabled": True, "allowFrom": ["42"]}},
            }
        )
    )
    config = load_config(path)

    assert config.agent.max_turns == 4
    assert config.agent.max_history == 8
    assert config.notes.cache_capacity == 7
    assert config.storage.auto_drive.api_key == "ad-key"
    assert config.channels.telegram.allow_from == ["42"]


def test_missing_file_yields_defaults(tmp_path):
    config = load_config(tmp_path / "absent.json")
    assert config.agent.name == "Autonomous Copilot"


def test_corrupt_file_yields_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config(path).agent.max_turns == 10


def test_invalid_values_raise(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"storage": {"backend": "s3"}}))
    with pytest.raises(ValidationError):
        load_config(path)


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("NOTEBOT_AGENT__MAX_TURNS", "3")
    config = load_config(tmp_path / "absent.json")
    assert config.agent.max_turns == 3


def test_save_and_reload(tmp_path):
    path = tmp_path / "config.json"
    config = Config()
    config.agent.model = "anthropic/claude-3-5-sonnet"
    config.notes.search_limit = 9
    save_config(config, path)

    saved = json.loads(path.read_text())
    assert saved["notes"]["searchLimit"] == 9

    reloaded = load_config(path)
    assert reloaded.agent.model == "anthropic/claude-3-5-sonnet"
    assert reloaded.notes.search_limit == 9
