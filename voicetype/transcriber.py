"""Cloud speech-to-text backends."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional, Protocol, Tuple

import httpx
import openai
from openai import OpenAI

from .models import BACKENDS, Config, SessionPaths

DEEPGRAM_URL = "https://api.deepgram.com/v1/listen"


class TranscriptionError(RuntimeError):
    """Base class for transcription failures."""


class UnauthorizedError(TranscriptionError):
    """The provider rejected the credential."""


class UnreachableError(TranscriptionError):
    """The provider could not be reached."""


class BadResponseError(TranscriptionError):
    """The provider answered with an error status or an unreadable body."""


class NoBackendError(TranscriptionError):
    """No usable backend is configured."""


class MissingArtifactError(RuntimeError):
    """A file required by the current step does not exist."""


class TranscriptionBackend(Protocol):
    """Common interface for transcription backends."""

    name: str

    def transcribe(self, audio_path: Path) -> Tuple[str, dict]:
        """Return a tuple of transcript text and metadata."""


def _describe_status(response: httpx.Response) -> str:
    detail = response.text.strip()
    try:
        payload = response.json()
    except ValueError:
        pass
    else:
        if isinstance(payload, dict):
            detail = str(payload.get("err_msg") or payload.get("message") or payload.get("error") or detail)
    return f"{response.status_code} {response.request.method} {response.request.url}: {detail}"


class DeepgramBackend:
    """Pre-recorded transcription through the Deepgram REST API."""

    name = "deepgram"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        language: str,
        params: str = "",
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not api_key:
            raise NoBackendError("A Deepgram API key is required for this backend.")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        query = httpx.QueryParams(params)
        query = query.set("language", language).set("model", model)
        self.params = query

    def transcribe(self, audio_path: Path) -> Tuple[str, dict]:
        logging.info("Transcribing %s with Deepgram", audio_path)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(
                    DEEPGRAM_URL,
                    params=self.params,
                    headers={
                        "Authorization": f"Token {self._api_key}",
                        "Content-Type": "audio/wav",
                    },
                    content=audio_path.read_bytes(),
                )
        except httpx.TransportError as exc:
            raise UnreachableError(f"Deepgram request failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise UnauthorizedError(f"Deepgram rejected the API key ({_describe_status(response)})")
        if not response.is_success:
            raise BadResponseError(f"Deepgram request failed ({_describe_status(response)})")

        try:
            payload = response.json()
            text = payload["results"]["channels"][0]["alternatives"][0]["transcript"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise BadResponseError(f"Unexpected Deepgram response: {response.text[:200]}") from exc
        if not isinstance(text, str):
            raise BadResponseError(f"Deepgram transcript is not text: {text!r}")
        return text, {"response": payload}


class OpenAIBackend:
    """Cloud transcription using the OpenAI audio API."""

    name = "openai"

    def __init__(
        self,
        model: str,
        api_key: Optional[str],
        language: str,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if not api_key:
            raise NoBackendError("An OpenAI API key is required for this backend.")
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0, http_client=http_client)
        self._model = model
        self._language = language

    def transcribe(self, audio_path: Path) -> Tuple[str, dict]:
        logging.info("Transcribing %s with OpenAI model %s", audio_path, self._model)
        try:
            with audio_path.open("rb") as fh:
                response = self._client.audio.transcriptions.create(
                    model=self._model,
                    file=fh,
                    response_format="text",
                    temperature=0.0,
                    language=self._language,
                )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise UnauthorizedError(f"OpenAI rejected the API key: {exc}") from exc
        except openai.APIConnectionError as exc:
            raise UnreachableError(f"OpenAI request failed: {exc}") from exc
        except openai.APIStatusError as exc:
            raise BadResponseError(f"OpenAI request failed ({exc.status_code}): {exc}") from exc

        # With response_format="text" the SDK hands back the body as a string.
        text = response if isinstance(response, str) else getattr(response, "text", None)
        if text is None:
            raise BadResponseError(f"Unexpected OpenAI response: {response!r}")
        return text, {"model": self._model}


def select_backend_name(config: Config) -> str:
    """Resolve ``config.backend`` to a concrete provider name."""

    if config.backend == "deepgram":
        if not config.deepgram_api_key:
            raise NoBackendError("Backend 'deepgram' is selected but DEEPGRAM_TOKEN is not set.")
        return "deepgram"
    if config.backend == "openai":
        if not config.openai_api_key:
            raise NoBackendError("Backend 'openai' is selected but OPEN_AI_TOKEN is not set.")
        return "openai"
    if config.deepgram_api_key:
        return "deepgram"
    if config.openai_api_key:
        return "openai"
    raise NoBackendError("You must set the DEEPGRAM_TOKEN or OPEN_AI_TOKEN environment variable.")


def get_backend(config: Config, preferred: Optional[str] = None) -> TranscriptionBackend:
    """Return the backend chosen by configuration, or ``preferred`` when given."""

    if preferred and preferred != config.backend:
        if preferred not in BACKENDS:
            raise NoBackendError(f"Unknown backend {preferred!r}; expected one of {', '.join(BACKENDS)}")
        config = replace(config, backend=preferred)
    name = select_backend_name(config)
    if name == "deepgram":
        return DeepgramBackend(
            config.deepgram_api_key,
            model=config.deepgram_model,
            language=config.language,
            params=config.deepgram_params,
            timeout=config.api_timeout,
        )
    return OpenAIBackend(
        config.openai_model,
        config.openai_api_key,
        language=config.language,
        timeout=config.api_timeout,
    )


def transcribe_audio(audio_path: Path, config: Config, backend: Optional[str] = None) -> Tuple[str, dict]:
    """High level convenience wrapper."""

    engine = get_backend(config, backend)
    return engine.transcribe(audio_path)


def transcribe_to_file(
    paths: SessionPaths,
    config: Config,
    engine: Optional[TranscriptionBackend] = None,
) -> Path:
    """Transcribe the session audio and write the transcript artifact."""

    if not paths.audio.exists():
        raise MissingArtifactError(f"Audio file not found: {paths.audio}")
    engine = engine or get_backend(config)
    text, metadata = engine.transcribe(paths.audio)
    if "response" in metadata:
        paths.response.write_text(json.dumps(metadata["response"]), encoding="utf-8")
    paths.transcript.write_text(text, encoding="utf-8")
    logging.info("Transcription completed with %s (%d chars)", engine.name, len(text))
    return paths.transcript
