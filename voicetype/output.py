"""Deliver transcripts to the clipboard and the focused window.

Both paths act on whatever application currently holds input focus. The
clipboard is replaced and keystrokes are synthesised globally, so callers
should only trigger delivery right after the user finished dictating.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pyperclip

from .models import Config
from .transcriber import MissingArtifactError

# Clipboard tools in order of preference, with the pyperclip backend that drives each.
CLIPBOARD_TOOLS: Tuple[Tuple[str, str], ...] = (
    ("wl-copy", "wl-clipboard"),
    ("xclip", "xclip"),
)
PASTE_KEYS = "ctrl+v"
COMMAND_TIMEOUT = 10


class DeliveryError(RuntimeError):
    """Raised when a delivery path fails."""


@dataclass
class DeliveryReport:
    text: str
    clipboard: bool = False
    inserted: bool = False
    problems: List[str] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.clipboard or self.inserted


def normalize_transcript(raw: bytes) -> str:
    """Decode as UTF-8, dropping invalid bytes, and strip one trailing line end."""

    text = raw.decode("utf-8", errors="ignore")
    for ending in ("\r\n", "\n", "\r"):
        if text.endswith(ending):
            return text[: -len(ending)]
    return text


def read_transcript(path: Path) -> str:
    if not path.exists():
        raise MissingArtifactError(f"Transcript file not found: {path}")
    return normalize_transcript(path.read_bytes())


def clipboard_tool() -> Optional[Tuple[str, str]]:
    for tool, backend in CLIPBOARD_TOOLS:
        if shutil.which(tool):
            return tool, backend
    return None


def _run(argv: Sequence[str], text: Optional[str] = None, env: Optional[dict] = None) -> None:
    try:
        subprocess.run(
            list(argv),
            input=text.encode("utf-8") if text is not None else None,
            check=True,
            capture_output=True,
            timeout=COMMAND_TIMEOUT,
            env=env,
        )
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.decode("utf-8", errors="replace").strip() if exc.stderr else ""
        raise DeliveryError(f"{argv[0]} exited with status {exc.returncode}: {stderr}") from exc
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise DeliveryError(f"{argv[0]} failed: {exc}") from exc


def copy_to_clipboard(text: str) -> None:
    found = clipboard_tool()
    if found is None:
        raise DeliveryError(
            "No clipboard utility found. Install wl-clipboard or xclip."
        )
    tool, backend = found
    # Pin the backend so pyperclip uses the same tool preflight checked for.
    pyperclip.set_clipboard(backend)
    try:
        pyperclip.copy(text)
    except (pyperclip.PyperclipException, OSError) as exc:
        raise DeliveryError(f"{tool} failed: {exc}") from exc


def paste_clipboard() -> None:
    _run(["xdotool", "key", "--clearmodifiers", PASTE_KEYS])


def type_text(text: str, locale: Optional[str] = None) -> None:
    env = None
    if locale:
        env = dict(os.environ, LANG=locale, LC_ALL=locale)
    _run(["xdotool", "type", "--clearmodifiers", "--file", "-"], text=text, env=env)


def deliver(text: str, config: Config) -> DeliveryReport:
    """Send ``text`` through the sinks selected by ``config.output_mode``."""

    report = DeliveryReport(text=text)
    mode = config.output_mode
    if mode == "none":
        return report

    try:
        copy_to_clipboard(text)
        report.clipboard = True
    except DeliveryError as exc:
        logging.error("Clipboard copy failed: %s", exc)
        report.problems.append(f"Clipboard copy failed: {exc}")

    if mode == "clipboard":
        return report

    try:
        if mode == "type":
            type_text(text, config.type_locale)
        elif report.clipboard:
            paste_clipboard()
        else:
            raise DeliveryError("nothing on the clipboard to paste")
        report.inserted = True
    except DeliveryError as exc:
        logging.warning("Automatic insertion failed: %s", exc)
        report.problems.append(f"Automatic insertion failed: {exc}")
    return report
