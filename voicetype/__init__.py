"""Top-level package for voicetype."""

__version__ = "0.1.0"

from . import config, dictation, output, preflight, recorder, sounds, transcriber

__all__ = [
    "config",
    "dictation",
    "output",
    "preflight",
    "recorder",
    "sounds",
    "transcriber",
    "__version__",
]
