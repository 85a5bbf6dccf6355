"""Toggle between starting a recording and finishing a dictation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from . import recorder, sounds
from .models import Config, Idle, Recording, SessionPaths
from .output import DeliveryReport, deliver, read_transcript
from .transcriber import TranscriptionBackend, transcribe_to_file


@dataclass
class Finished:
    stop: recorder.StopResult
    report: Optional[DeliveryReport] = None
    kept_transcript: bool = False


def cleanup_artifacts(paths: SessionPaths, keep_transcript: bool = False) -> None:
    for artifact in paths.artifacts():
        if keep_transcript and artifact == paths.transcript:
            continue
        artifact.unlink(missing_ok=True)


def begin(config: Config, paths: SessionPaths) -> Recording:
    recording = recorder.start_recording(config, paths)
    sounds.play_cue(config, "start")
    return recording


def finish(
    config: Config,
    paths: SessionPaths,
    engine: Optional[TranscriptionBackend] = None,
) -> Finished:
    """Stop capture, transcribe, deliver the text and remove the artifacts."""

    if isinstance(recorder.read_state(paths), Idle):
        logging.warning("finish requested but no recording is active")
        return Finished(stop=recorder.stop_recording(paths))

    sounds.play_cue(config, "stop")
    result = Finished(stop=recorder.stop_recording(paths))
    try:
        transcribe_to_file(paths, config, engine)
        text = read_transcript(paths.transcript)
        result.report = deliver(text, config)
        sounds.play_cue(config, "done")
    finally:
        result.kept_transcript = (
            result.report is not None
            and config.output_mode != "none"
            and not result.report.delivered
        )
        cleanup_artifacts(paths, keep_transcript=result.kept_transcript)
    return result


def toggle(
    config: Config,
    paths: SessionPaths,
    engine: Optional[TranscriptionBackend] = None,
) -> Union[Recording, Finished]:
    if isinstance(recorder.read_state(paths), Recording):
        return finish(config, paths, engine)
    return begin(config, paths)
