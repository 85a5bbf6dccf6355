import os
import signal
import sys

import pytest

from voicetype import config, recorder
from voicetype.models import SessionPaths

ENV_VARS = (
    "DEEPGRAM_TOKEN",
    "DEEPGRAM_API_KEY",
    "OPEN_AI_TOKEN",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    *config.SETTING_VARS.values(),
)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    app_dir = tmp_path / "voice-type"
    monkeypatch.setattr(config, "APP_DIR", app_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", app_dir / "config.json")
    monkeypatch.setattr(config, "TOKEN_FILE", tmp_path / "ai-token")
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return app_dir


@pytest.fixture
def paths(tmp_path) -> SessionPaths:
    return SessionPaths(tmp_path / "session")


@pytest.fixture
def spawned():
    """Collect PIDs started by a test and kill any survivors afterwards."""

    pids = []
    yield pids
    for pid in pids:
        if recorder.pid_alive(pid):
            os.kill(pid, signal.SIGKILL)


@pytest.fixture
def fake_recorder(monkeypatch):
    """Replace the whole capture command with a sleeping Python child."""

    def command(cfg, session_paths):
        return [sys.executable, "-c", "import time; time.sleep(30)"]

    monkeypatch.setattr(recorder, "capture_command", command)
    return command
