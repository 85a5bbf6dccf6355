"""Dataclasses describing configuration and session state for voicetype."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

SOUNDS_DIR = "/usr/share/sounds/freedesktop/stereo"

BACKENDS = ("auto", "deepgram", "openai")
OUTPUT_MODES = ("paste", "type", "clipboard", "none")


@dataclass(slots=True)
class Config:
    """User configuration, fixed for the lifetime of one invocation."""

    backend: str = "auto"
    deepgram_api_key: Optional[str] = None
    deepgram_model: str = "nova-2"
    deepgram_params: str = "smart_format=true&paragraphs=true&punctuate=true"
    openai_api_key: Optional[str] = None
    openai_model: str = "whisper-1"
    language: str = "es"
    max_duration: int = 120
    audio_device: str = "@DEFAULT_SOURCE@"
    output_mode: str = "paste"
    type_locale: Optional[str] = None
    api_timeout: Optional[float] = None
    sound_start: str = f"{SOUNDS_DIR}/service-login.oga"
    sound_stop: str = f"{SOUNDS_DIR}/service-logout.oga"
    sound_done: str = f"{SOUNDS_DIR}/audio-volume-change.oga"


@dataclass(frozen=True)
class SessionPaths:
    """Locations of the marker and the per-session artifacts."""

    root: Path
    name: str = "recording"

    @property
    def marker(self) -> Path:
        return self.root / f"{self.name}.pid"

    @property
    def audio(self) -> Path:
        return self.root / f"{self.name}.wav"

    @property
    def transcript(self) -> Path:
        return self.root / f"{self.name}.txt"

    @property
    def response(self) -> Path:
        return self.root / f"{self.name}.json"

    @property
    def error_log(self) -> Path:
        return self.root / f"{self.name}_error.log"

    @property
    def output_log(self) -> Path:
        return self.root / f"{self.name}_output.log"

    def artifacts(self) -> tuple[Path, ...]:
        return (self.audio, self.transcript, self.response, self.error_log, self.output_log)


@dataclass(frozen=True)
class Idle:
    """No recording is in progress."""


@dataclass(frozen=True)
class Recording:
    """A capture subprocess is running under the session marker."""

    pid: int
    started_at: datetime


SessionState = Union[Idle, Recording]
