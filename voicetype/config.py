"""Persisted configuration management."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from .models import BACKENDS, OUTPUT_MODES, Config

APP_DIR = Path.home() / ".voice-type"
CONFIG_PATH = (APP_DIR / "config.json").expanduser()
TOKEN_FILE = Path.home() / ".ai-token"

# Later names in each tuple win over earlier ones.
CREDENTIAL_VARS = {
    "deepgram_api_key": ("DEEPGRAM_API_KEY", "DEEPGRAM_TOKEN"),
    "openai_api_key": ("OPENAI_API_KEY", "OPEN_AI_TOKEN"),
}

SETTING_VARS = {
    "backend": "VOICETYPE_BACKEND",
    "max_duration": "VOICETYPE_MAX_DURATION",
    "audio_device": "VOICETYPE_AUDIO_DEVICE",
    "language": "VOICETYPE_LANGUAGE",
    "deepgram_model": "VOICETYPE_DEEPGRAM_MODEL",
    "deepgram_params": "VOICETYPE_DEEPGRAM_PARAMS",
    "openai_model": "VOICETYPE_OPENAI_MODEL",
    "output_mode": "VOICETYPE_OUTPUT_MODE",
    "type_locale": "VOICETYPE_TYPE_LOCALE",
    "sound_start": "VOICETYPE_SOUND_START",
    "sound_stop": "VOICETYPE_SOUND_STOP",
    "sound_done": "VOICETYPE_SOUND_DONE",
}


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or saved."""


def _coerce(key: str, value: Any) -> Any:
    if key == "max_duration":
        try:
            duration = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"max_duration must be an integer, got {value!r}") from exc
        if duration <= 0:
            raise ConfigError("max_duration must be positive")
        return duration
    if key == "api_timeout":
        if value in (None, ""):
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"api_timeout must be a number, got {value!r}") from exc
    if key == "backend" and value not in BACKENDS:
        raise ConfigError(f"Unknown backend {value!r}; expected one of {', '.join(BACKENDS)}")
    if key == "output_mode" and value not in OUTPUT_MODES:
        raise ConfigError(
            f"Unknown output mode {value!r}; expected one of {', '.join(OUTPUT_MODES)}"
        )
    return value


def _read_file() -> Dict[str, Any]:
    if not CONFIG_PATH.exists():
        return {}
    try:
        payload = json.loads(CONFIG_PATH.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
    known = {f.name for f in fields(Config)}
    unknown = set(payload) - known
    if unknown:
        raise ConfigError(f"Unknown configuration key(s) in {CONFIG_PATH}: {', '.join(sorted(unknown))}")
    return payload


def load_token_file(path: Optional[Path] = None) -> Dict[str, str]:
    """Read credentials from a shell-style ``KEY=value`` file."""

    path = path or TOKEN_FILE
    if not path.exists():
        return {}
    values = dotenv_values(path)
    return {key: value for key, value in values.items() if value}


def apply_environment(settings: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay credentials and settings found in ``environ`` onto ``settings``."""

    for key, names in CREDENTIAL_VARS.items():
        for name in names:
            if environ.get(name):
                settings[key] = environ[name]
    for key, name in SETTING_VARS.items():
        value = environ.get(name)
        if value:
            settings[key] = value
    return settings


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build the configuration from the JSON file, token file and environment."""

    settings = _read_file()
    tokens = load_token_file()
    if tokens:
        logging.debug("Loaded %d value(s) from %s", len(tokens), TOKEN_FILE)
        apply_environment(settings, tokens)
    apply_environment(settings, os.environ if environ is None else environ)
    return Config(**{key: _coerce(key, value) for key, value in settings.items()})


def save_config(config: Config) -> None:
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    data = {k: v for k, v in asdict(config).items() if v is not None}
    CONFIG_PATH.write_text(json.dumps(data, indent=2))
    CONFIG_PATH.chmod(0o600)


def update_config(**kwargs: Any) -> Config:
    """Apply ``kwargs`` to the persisted file only, leaving the environment out."""

    config = Config(**{key: _coerce(key, value) for key, value in _read_file().items()})
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, _coerce(key, value))
        else:
            raise ConfigError(f"Unknown configuration key: {key}")
    save_config(config)
    return config
