import logging
import re
import time
from typing import Optional
from urllib.parse import urlsplit

import httpx

from app.services.scoring import TRANSCRIPTION_FAILED_SENTINEL
from app.session.api import ApiError, InterviewApiClient
from app.session.recording import CapturedAudio
from app.session.results import Degraded, Failed, Ok, Outcome

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "audio/webm"

EXTENSIONS = {
    "audio/webm": ".webm",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/mpeg": ".mp3",
    "audio/mp4": ".m4a",
}

UPLOAD_FAILED_WARNING = "Audio upload failed. Your answer was saved without the recording."
TRANSCRIPTION_FAILED_WARNING = "Could not transcribe the recording."
AUDIO_UNAVAILABLE_MESSAGE = "Unable to load the audio recording. Use reload to try again."

API_PREFIX_PATTERN = re.compile(r"/api/v\d+/?$")


def audio_filename(content_type: str) -> str:
    base_type = content_type.split(";")[0].strip()
    return f"recording-{int(time.time() * 1000)}{EXTENSIONS.get(base_type, '.webm')}"


class UploadRelay:
    def __init__(self, api: InterviewApiClient):
        self.api = api

    async def upload(self, audio: Optional[CapturedAudio]) -> Outcome[str]:
        if audio is None or audio.empty:
            return Ok("")

        content_type = audio.content_type or DEFAULT_CONTENT_TYPE
        try:
            url = await self.api.upload_audio(audio_filename(content_type), audio.data, content_type)
        except ApiError as exc:
            logger.warning("Audio upload failed: %s", exc)
            return Degraded("", UPLOAD_FAILED_WARNING)
        return Ok(url)


class TranscriptionFallback:
    def __init__(self, api: InterviewApiClient):
        self.api = api

    async def transcribe(self, audio: CapturedAudio) -> Outcome[str]:
        content_type = audio.content_type or DEFAULT_CONTENT_TYPE
        try:
            text = (await self.api.transcribe(audio_filename(content_type), audio.data, content_type)).strip()
        except ApiError as exc:
            logger.warning("Hosted transcription failed: %s", exc)
            return Degraded(TRANSCRIPTION_FAILED_SENTINEL, TRANSCRIPTION_FAILED_WARNING)

        if not text:
            logger.warning("Hosted transcription returned no text")
            return Degraded(TRANSCRIPTION_FAILED_SENTINEL, TRANSCRIPTION_FAILED_WARNING)
        return Ok(text)


def server_root(api_base_url: str) -> str:
    return API_PREFIX_PATTERN.sub("", api_base_url.rstrip("/"))


def fallback_audio_url(url: str, api_base_url: str) -> str:
    """Static-file URL for the recording's file name on the API server."""
    filename = urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1]
    return f"{server_root(api_base_url)}/uploads/{filename}"


class AudioLocator:
    """Loads a stored recording, falling back once to the server's static-file URL.

    After both attempts fail the locator stays in the ``error`` state until
    ``reload()`` is called.
    """

    def __init__(self, api_base_url: str, client: httpx.AsyncClient):
        self.api_base_url = api_base_url
        self.client = client
        self.url: Optional[str] = None
        self.resolved_url: Optional[str] = None
        self.state = "idle"
        self.error: Optional[str] = None

    def _absolute(self, url: str) -> str:
        if url.startswith("/"):
            return f"{server_root(self.api_base_url)}{url}"
        return url

    async def _get(self, url: str) -> bytes:
        response = await self.client.get(url)
        response.raise_for_status()
        return response.content

    async def fetch(self, url: str) -> Outcome[bytes]:
        self.url = url
        primary = self._absolute(url)
        try:
            data = await self._get(primary)
            self._loaded(primary)
            return Ok(data)
        except httpx.HTTPError as exc:
            logger.warning("Audio load failed for %s: %s", primary, exc)

        fallback = fallback_audio_url(url, self.api_base_url)
        try:
            data = await self._get(fallback)
        except httpx.HTTPError as exc:
            logger.warning("Fallback audio load failed for %s: %s", fallback, exc)
            self.state = "error"
            self.error = AUDIO_UNAVAILABLE_MESSAGE
            return Failed(exc)

        self._loaded(fallback)
        return Ok(data)

    async def reload(self) -> Outcome[bytes]:
        if not self.url:
            return Failed(ValueError("No audio URL to reload"))
        return await self.fetch(self.url)

    def _loaded(self, url: str):
        self.resolved_url = url
        self.state = "loaded"
        self.error = None
