import json

import pytest
from typer.testing import CliRunner

from voicetype import __version__, config, output, preflight, sounds, transcriber
from voicetype.cli import app
from voicetype.models import Config, SessionPaths

runner = CliRunner()


class _StubBackend:
    name = "stub"

    def transcribe(self, audio_path):
        return "hola mundo\n", {}


@pytest.fixture
def tools(monkeypatch):
    monkeypatch.setattr(preflight.shutil, "which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def quiet(monkeypatch):
    copied = []
    monkeypatch.setattr(output.pyperclip, "set_clipboard", lambda backend: None)
    monkeypatch.setattr(output.pyperclip, "copy", copied.append)
    monkeypatch.setattr(output, "_run", lambda argv, text=None, env=None: None)
    monkeypatch.setattr(sounds, "play_sound", lambda path: False)
    monkeypatch.setattr(transcriber, "get_backend", lambda cfg, preferred=None: _StubBackend())
    return copied


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_toggle_without_credentials_creates_no_state(tools, isolated_home):
    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert "DEEPGRAM_TOKEN or OPEN_AI_TOKEN" in result.output
    session = SessionPaths(isolated_home)
    assert not session.marker.exists()
    assert not any(path.exists() for path in session.artifacts())
    assert not isolated_home.exists() or not any(isolated_home.iterdir())


def test_missing_tool_aborts(monkeypatch):
    monkeypatch.setenv("DEEPGRAM_TOKEN", "dg")
    monkeypatch.setattr(preflight.shutil, "which", lambda name: None)

    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert "parecord" in result.output


def test_toggle_twice_records_then_delivers(tools, quiet, fake_recorder, spawned, isolated_home, monkeypatch):
    monkeypatch.setenv("DEEPGRAM_TOKEN", "dg")
    session = SessionPaths(isolated_home)

    first = runner.invoke(app, [])
    assert first.exit_code == 0, first.output
    assert "Recording started with PID" in first.output
    assert "Capture started" in (isolated_home / "voicetype.log").read_text()
    pid = int(session.marker.read_text())
    spawned.append(pid)
    session.audio.write_bytes(b"RIFF")

    status = runner.invoke(app, ["status"])
    assert f"PID {pid} running" in status.output

    second = runner.invoke(app, [])
    assert second.exit_code == 0, second.output
    assert "hola mundo" in second.output
    assert quiet == ["hola mundo"]
    assert not session.marker.exists()
    assert not any(path.exists() for path in session.artifacts())

    assert runner.invoke(app, ["status"]).output.strip() == "Idle."


def test_explicit_start_twice_is_rejected(tools, quiet, fake_recorder, spawned, isolated_home, monkeypatch):
    monkeypatch.setenv("OPEN_AI_TOKEN", "sk")

    assert runner.invoke(app, ["start"]).exit_code == 0
    spawned.append(int(SessionPaths(isolated_home).marker.read_text()))

    again = runner.invoke(app, ["start"])
    assert again.exit_code == 2
    assert "already in progress" in again.output


def test_stop_when_idle_warns(tools, quiet, monkeypatch):
    monkeypatch.setenv("OPEN_AI_TOKEN", "sk")

    result = runner.invoke(app, ["stop"])

    assert result.exit_code == 0
    assert "No active recording" in result.output


def test_transcribe_existing_file(quiet, tmp_path, monkeypatch):
    monkeypatch.setenv("OPEN_AI_TOKEN", "sk")
    audio = tmp_path / "note.wav"
    audio.write_bytes(b"RIFF")

    result = runner.invoke(app, ["transcribe", str(audio)])

    assert result.exit_code == 0
    assert result.output == "hola mundo\n"
    assert quiet == []


def test_config_update_and_show():
    result = runner.invoke(app, ["config", "--language", "en", "--deepgram-api-key", "dg-secret-key"])
    assert result.exit_code == 0
    assert json.loads(config.CONFIG_PATH.read_text())["language"] == "en"

    shown = runner.invoke(app, ["config", "--show"])
    data = json.loads(shown.output)
    assert data["language"] == "en"
    assert data["deepgram_api_key"] == "dg-s…"


def test_config_rejects_bad_output_mode():
    result = runner.invoke(app, ["config", "--output-mode", "shout"])
    assert result.exit_code == 1
    assert "Unknown output mode" in result.output


def test_check_reports_missing_credential(tools):
    result = runner.invoke(app, ["check"])

    assert result.exit_code == 1
    assert "no credential" in result.output


def test_config_sets_sound_cues(tmp_path):
    chime = tmp_path / "chime.oga"

    result = runner.invoke(app, ["config", "--sound-start", str(chime), "--sound-done", str(chime)])
    assert result.exit_code == 0

    saved = json.loads(config.CONFIG_PATH.read_text())
    assert saved["sound_start"] == str(chime)
    assert saved["sound_done"] == str(chime)
    assert config.load_config(environ={}).sound_stop == Config().sound_stop
