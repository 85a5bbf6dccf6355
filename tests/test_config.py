import json

import pytest

from voicetype import config
from voicetype.models import Config


def test_load_default_config_when_missing():
    cfg = config.load_config(environ={})
    assert isinstance(cfg, Config)
    assert cfg.backend == "auto"
    assert cfg.max_duration == 120
    assert cfg.audio_device == "@DEFAULT_SOURCE@"
    assert cfg.deepgram_api_key is None
    assert cfg.openai_api_key is None


def test_save_and_load_config():
    cfg = Config(backend="openai", language="en", max_duration=30)
    config.save_config(cfg)

    loaded = config.load_config(environ={})
    assert loaded.backend == "openai"
    assert loaded.language == "en"
    assert loaded.max_duration == 30


def test_saved_config_is_private():
    config.save_config(Config(openai_api_key="sk-secret"))
    assert config.CONFIG_PATH.stat().st_mode & 0o777 == 0o600


def test_update_config_validates_keys():
    config.update_config(backend="deepgram")
    loaded = config.load_config(environ={})
    assert loaded.backend == "deepgram"

    with pytest.raises(config.ConfigError):
        config.update_config(unknown="value")


def test_update_config_rejects_bad_values():
    with pytest.raises(config.ConfigError):
        config.update_config(output_mode="shout")
    with pytest.raises(config.ConfigError):
        config.update_config(max_duration=0)


def test_update_config_does_not_persist_environment(monkeypatch):
    monkeypatch.setenv("DEEPGRAM_TOKEN", "dg-from-env")
    config.update_config(language="fr")

    stored = json.loads(config.CONFIG_PATH.read_text())
    assert "deepgram_api_key" not in stored
    assert stored["language"] == "fr"


def test_unknown_key_in_file_is_rejected():
    config.CONFIG_PATH.parent.mkdir(parents=True)
    config.CONFIG_PATH.write_text(json.dumps({"hotkey": "fn"}))

    with pytest.raises(config.ConfigError):
        config.load_config(environ={})


def test_corrupt_file_is_reported():
    config.CONFIG_PATH.parent.mkdir(parents=True)
    config.CONFIG_PATH.write_text("{not json")

    with pytest.raises(config.ConfigError):
        config.load_config(environ={})


def test_environment_overrides_file():
    config.save_config(Config(language="en", max_duration=60))

    cfg = config.load_config(
        environ={
            "VOICETYPE_LANGUAGE": "es",
            "VOICETYPE_MAX_DURATION": "15",
            "DEEPGRAM_TOKEN": "dg-key",
            "OPEN_AI_TOKEN": "sk-key",
        }
    )
    assert cfg.language == "es"
    assert cfg.max_duration == 15
    assert cfg.deepgram_api_key == "dg-key"
    assert cfg.openai_api_key == "sk-key"


def test_token_names_win_over_aliases():
    cfg = config.load_config(environ={"OPENAI_API_KEY": "alias", "OPEN_AI_TOKEN": "primary"})
    assert cfg.openai_api_key == "primary"


def test_invalid_environment_value_raises():
    with pytest.raises(config.ConfigError):
        config.load_config(environ={"VOICETYPE_MAX_DURATION": "two minutes"})


def test_token_file_is_read():
    config.TOKEN_FILE.write_text("export DEEPGRAM_TOKEN=dg-file\nOPEN_AI_TOKEN='sk-file'\n")

    cfg = config.load_config(environ={})
    assert cfg.deepgram_api_key == "dg-file"
    assert cfg.openai_api_key == "sk-file"


def test_environment_beats_token_file():
    config.TOKEN_FILE.write_text("DEEPGRAM_TOKEN=dg-file\n")

    cfg = config.load_config(environ={"DEEPGRAM_TOKEN": "dg-env"})
    assert cfg.deepgram_api_key == "dg-env"


def test_load_token_file_missing_returns_empty(tmp_path):
    assert config.load_token_file(tmp_path / "nope") == {}
