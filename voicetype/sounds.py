"""Short audio cues played at recording transitions."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from .models import Config

PLAYER = "paplay"
PLAY_TIMEOUT = 5

CUES = {
    "start": "sound_start",
    "stop": "sound_stop",
    "done": "sound_done",
}


def play_sound(path: Optional[str]) -> bool:
    """Play ``path`` with paplay; return whether it played. Never raises."""

    if not path:
        return False
    if not Path(path).exists():
        logging.debug("Sound file %s not found; skipping cue", path)
        return False
    player = shutil.which(PLAYER)
    if player is None:
        logging.debug("%s not available; skipping cue", PLAYER)
        return False
    try:
        subprocess.run(
            [player, path],
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=PLAY_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logging.debug("Sound cue %s failed: %s", path, exc)
        return False
    return True


def play_cue(config: Config, cue: str) -> bool:
    return play_sound(getattr(config, CUES[cue]))
