"""Start and stop the background capture subprocess behind a PID marker file."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import Config, Idle, Recording, SessionPaths, SessionState

START_CHECK_DELAY = 0.3
STOP_TIMEOUT = 5.0
POLL_INTERVAL = 0.05


class RecorderError(RuntimeError):
    """Base class for capture lifecycle failures."""


class AlreadyRecordingError(RecorderError):
    """Raised when a start is requested while a marker already exists."""

    def __init__(self, marker: Path) -> None:
        super().__init__(
            f"A recording is already in progress (marker {marker}). "
            "Run `voicetype stop` to finish it or delete the marker if it is stale."
        )
        self.marker = marker


class CaptureError(RecorderError):
    """Raised when the capture subprocess fails to start."""

    def __init__(self, message: str, diagnostic: str = "") -> None:
        super().__init__(message)
        self.diagnostic = diagnostic


@dataclass(frozen=True)
class StopResult:
    pid: Optional[int]
    was_running: bool
    exited: bool = True


def recorder_command(config: Config, paths: SessionPaths) -> List[str]:
    return [
        "parecord",
        "--channels=1",
        "--format=s16le",
        "--rate=44100",
        "--file-format=wav",
        f"--device={config.audio_device}",
        str(paths.audio),
    ]


def capture_command(config: Config, paths: SessionPaths) -> List[str]:
    """Return the argv of the capture subprocess, bounded by ``timeout(1)``."""

    return ["timeout", str(config.max_duration), *recorder_command(config, paths)]


def pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True

    # A terminated child that nobody reaped yet still answers signal 0.
    stat_path = Path(f"/proc/{pid}/stat")
    try:
        stat_raw = stat_path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return True
    if ") " in stat_raw and stat_raw.split(") ", 1)[1][:1] == "Z":
        return False
    return True


def wait_for_exit(pid: int, timeout: float) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not pid_alive(pid):
            return True
        time.sleep(POLL_INTERVAL)
    return not pid_alive(pid)


def read_state(paths: SessionPaths) -> SessionState:
    try:
        raw = paths.marker.read_text().strip()
        started = datetime.fromtimestamp(paths.marker.stat().st_mtime)
    except FileNotFoundError:
        return Idle()
    try:
        pid = int(raw)
    except ValueError:
        # Marker created but PID not written yet, or corrupted by hand.
        pid = 0
    return Recording(pid=pid, started_at=started)


def _create_marker(marker: Path) -> int:
    marker.parent.mkdir(parents=True, exist_ok=True)
    try:
        return os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError as exc:
        raise AlreadyRecordingError(marker) from exc


def start_recording(config: Config, paths: SessionPaths) -> Recording:
    """Spawn the recorder and persist its PID to the marker file."""

    fd = _create_marker(paths.marker)
    argv = capture_command(config, paths)
    logging.debug("Starting capture: %s", " ".join(argv))
    try:
        with paths.error_log.open("wb") as err, paths.output_log.open("wb") as out:
            proc = subprocess.Popen(
                argv,
                stdout=out,
                stderr=err,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
    except OSError as exc:
        os.close(fd)
        paths.marker.unlink(missing_ok=True)
        raise CaptureError(f"Could not launch recorder {argv[0]!r}: {exc}") from exc

    with os.fdopen(fd, "w") as marker:
        marker.write(f"{proc.pid}\n")
    logging.info("Capture started pid=%s device=%s limit=%ss", proc.pid, config.audio_device, config.max_duration)

    try:
        proc.wait(timeout=START_CHECK_DELAY)
    except subprocess.TimeoutExpired:
        pass

    diagnostic = paths.error_log.read_text(errors="replace").strip() if paths.error_log.exists() else ""
    if diagnostic or (proc.returncode not in (None, 0)):
        # The marker stays so the failed session can be inspected.
        raise CaptureError(
            f"Error starting recording (exit status {proc.returncode}). "
            f"Check {paths.error_log} for details.",
            diagnostic=diagnostic,
        )
    return Recording(pid=proc.pid, started_at=datetime.now())


def stop_recording(paths: SessionPaths, timeout: float = STOP_TIMEOUT) -> StopResult:
    """Terminate the recorder named by the marker and remove the marker."""

    state = read_state(paths)
    if isinstance(state, Idle):
        logging.warning("No active recording; nothing to stop")
        return StopResult(pid=None, was_running=False)

    pid = state.pid
    try:
        if not pid_alive(pid):
            logging.info("Process %s not found, cleaning up stale marker", pid)
            return StopResult(pid=pid, was_running=False)
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            logging.info("Process %s disappeared before SIGTERM", pid)
            return StopResult(pid=pid, was_running=False)
        exited = wait_for_exit(pid, timeout)
        if exited:
            logging.info("Recording process %s stopped", pid)
        else:
            logging.warning("Recording process %s still alive after %.1fs", pid, timeout)
        return StopResult(pid=pid, was_running=True, exited=exited)
    finally:
        paths.marker.unlink(missing_ok=True)
