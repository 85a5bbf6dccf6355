"""Command line interface for voicetype.

Running ``voicetype`` with no command toggles dictation: the first call starts
recording and the second stops it, transcribes the audio and inserts the text.
Insertion replaces the system clipboard and sends keystrokes to whichever
window has input focus.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Iterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from . import config as config_mod
from .config import ConfigError
from .dictation import Finished, begin, finish, toggle
from .models import Config, Idle, Recording, SessionPaths
from .output import deliver, normalize_transcript
from .preflight import PreflightError, check_environment, ensure_ready
from .recorder import AlreadyRecordingError, CaptureError, pid_alive, read_state
from .transcriber import MissingArtifactError, TranscriptionError, transcribe_audio

app = typer.Typer(
    add_completion=False,
    help=(
        "Toggle voice dictation. Run once to start recording, again to transcribe "
        "and insert the text. Insertion overwrites the clipboard and types into "
        "the focused window."
    ),
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _setup_logging(verbose: bool) -> None:
    stream = logging.StreamHandler()
    stream.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, datefmt="%H:%M:%S", handlers=[stream], force=True)
    for name in ("httpx", "httpcore", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _log_to_file() -> None:
    """Mirror INFO and above into the app directory once preflight has passed."""

    try:
        config_mod.APP_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config_mod.APP_DIR / "voicetype.log", delay=True)
    except OSError as exc:
        typer.secho(f"Logging to file disabled: {exc}", fg=typer.colors.YELLOW, err=True)
        return
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logging.getLogger().addHandler(file_handler)


def _session_paths() -> SessionPaths:
    return SessionPaths(config_mod.APP_DIR)


def _fail(message: str, code: int = 1) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code=code)


def _load_ready_config() -> Config:
    try:
        cfg = config_mod.load_config()
        ensure_ready(cfg)
    except (ConfigError, PreflightError) as exc:
        raise _fail(str(exc)) from exc
    _log_to_file()
    return cfg


def _report_started(recording: Recording, cfg: Config) -> None:
    typer.secho(
        f"Recording started with PID {recording.pid}. "
        f"Will stop automatically after {cfg.max_duration} seconds.",
        fg=typer.colors.BLUE,
    )


def _report_finished(result: Finished, paths: SessionPaths) -> None:
    if result.stop.pid is None:
        typer.secho("No active recording.", fg=typer.colors.YELLOW, err=True)
        return
    report = result.report
    if report is None:
        return
    typer.echo(report.text)
    for problem in report.problems:
        typer.secho(problem, fg=typer.colors.YELLOW, err=True)
    if result.kept_transcript:
        typer.secho(f"Transcript kept at {paths.transcript}", fg=typer.colors.YELLOW, err=True)
    elif report.inserted:
        typer.secho("Text inserted.", fg=typer.colors.GREEN, err=True)
    elif report.clipboard:
        typer.secho("Text copied to the clipboard.", fg=typer.colors.GREEN, err=True)


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except AlreadyRecordingError as exc:
        raise _fail(str(exc), code=2) from exc
    except CaptureError as exc:
        if exc.diagnostic:
            typer.echo(exc.diagnostic, err=True)
        raise _fail(str(exc)) from exc
    except (MissingArtifactError, TranscriptionError) as exc:
        raise _fail(str(exc)) from exc


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging on stderr."),
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
) -> None:
    if version:
        typer.echo(f"voicetype v{__version__}")
        raise typer.Exit()

    _setup_logging(verbose)

    if ctx.invoked_subcommand is None:
        cfg = _load_ready_config()
        paths = _session_paths()
        with _reported_errors():
            outcome = toggle(cfg, paths)
        if isinstance(outcome, Recording):
            _report_started(outcome, cfg)
        else:
            _report_finished(outcome, paths)


@app.command()
def start() -> None:
    """Start recording; fails if a recording is already active."""

    cfg = _load_ready_config()
    with _reported_errors():
        recording = begin(cfg, _session_paths())
    _report_started(recording, cfg)


@app.command()
def stop() -> None:
    """Stop recording, transcribe and insert the text."""

    cfg = _load_ready_config()
    paths = _session_paths()
    with _reported_errors():
        result = finish(cfg, paths)
    _report_finished(result, paths)


@app.command()
def status() -> None:
    """Show whether a recording is in progress."""

    state = read_state(_session_paths())
    if isinstance(state, Idle):
        typer.echo("Idle.")
        return
    alive = "running" if pid_alive(state.pid) else "not running (stale marker)"
    typer.echo(f"Recording since {state.started_at:%Y-%m-%d %H:%M:%S}, PID {state.pid} {alive}.")


@app.command()
def check() -> None:
    """List required tools and credentials."""

    try:
        cfg = config_mod.load_config()
    except ConfigError as exc:
        raise _fail(str(exc)) from exc

    report = check_environment(cfg)
    table = Table(title="voicetype dependencies")
    table.add_column("Role", style="cyan")
    table.add_column("Command")
    table.add_column("Location")
    for tool in report.tools:
        location = tool.found or "[red]missing[/red]"
        table.add_row(tool.role, " / ".join(tool.candidates), location)
    table.add_row("transcription", report.backend or "-", "[green]configured[/green]" if report.backend else "[red]no credential[/red]")
    Console().print(table)

    if not report.ok:
        raise _fail("\n".join(report.problems))


@app.command()
def transcribe(
    audio: Path = typer.Argument(..., exists=True, readable=True, help="Path to a WAV file."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Force deepgram or openai."),
    insert: bool = typer.Option(False, "--insert/--no-insert", help="Deliver the text like a dictation."),
) -> None:
    """Transcribe an existing audio file and print the text."""

    try:
        cfg = config_mod.load_config()
        text, _metadata = transcribe_audio(audio, cfg, backend=backend)
    except (ConfigError, TranscriptionError) as exc:
        raise _fail(str(exc)) from exc

    text = normalize_transcript(text.encode("utf-8"))
    typer.echo(text)
    if insert:
        report = deliver(text, cfg)
        for problem in report.problems:
            typer.secho(problem, fg=typer.colors.YELLOW, err=True)
        if not report.delivered and cfg.output_mode != "none":
            raise _fail("Text could not be delivered.")


@app.command()
def config(
    backend: Optional[str] = typer.Option(None, help="Transcription backend (auto, deepgram, openai)."),
    deepgram_api_key: Optional[str] = typer.Option(None, help="API key for Deepgram."),
    deepgram_model: Optional[str] = typer.Option(None, help="Deepgram model name."),
    deepgram_params: Optional[str] = typer.Option(None, help="Extra Deepgram query string."),
    openai_api_key: Optional[str] = typer.Option(None, help="API key for OpenAI."),
    openai_model: Optional[str] = typer.Option(None, help="OpenAI transcription model id."),
    language: Optional[str] = typer.Option(None, help="Spoken language tag, e.g. es or en."),
    max_duration: Optional[int] = typer.Option(None, help="Recording limit in seconds."),
    audio_device: Optional[str] = typer.Option(None, help="PulseAudio source for parecord."),
    output_mode: Optional[str] = typer.Option(None, help="paste, type, clipboard or none."),
    type_locale: Optional[str] = typer.Option(None, help="Locale used when typing text."),
    api_timeout: Optional[float] = typer.Option(None, help="HTTP timeout in seconds for provider calls."),
    sound_start: Optional[str] = typer.Option(None, help="Sound played when recording starts."),
    sound_stop: Optional[str] = typer.Option(None, help="Sound played when recording stops."),
    sound_done: Optional[str] = typer.Option(None, help="Sound played once the text is delivered."),
    show: bool = typer.Option(False, "--show", help="Display the active configuration."),
) -> None:
    """Update or inspect configuration settings."""

    updates: Dict[str, object] = {
        key: value
        for key, value in {
            "backend": backend,
            "deepgram_api_key": deepgram_api_key,
            "deepgram_model": deepgram_model,
            "deepgram_params": deepgram_params,
            "openai_api_key": openai_api_key,
            "openai_model": openai_model,
            "language": language,
            "max_duration": max_duration,
            "audio_device": audio_device,
            "output_mode": output_mode,
            "type_locale": type_locale,
            "api_timeout": api_timeout,
            "sound_start": sound_start,
            "sound_stop": sound_stop,
            "sound_done": sound_done,
        }.items()
        if value is not None
    }

    if show or not updates:
        try:
            cfg = config_mod.load_config()
        except ConfigError as exc:
            raise _fail(str(exc)) from exc
        data = asdict(cfg)
        for key in ("deepgram_api_key", "openai_api_key"):
            if data[key]:
                data[key] = data[key][:4] + "…"
        typer.echo(json.dumps(data, indent=2, default=str))
        return

    try:
        config_mod.update_config(**updates)
    except ConfigError as exc:
        raise _fail(str(exc)) from exc
    typer.secho("Configuration updated.", fg=typer.colors.BLUE)


@app.command()
def setup() -> None:
    """Run the interactive setup wizard."""

    from .onboarding import run_onboarding

    try:
        run_onboarding()
    except ConfigError as exc:
        raise _fail(f"Setup failed: {exc}") from exc


if __name__ == "__main__":  # pragma: no cover
    app()
