import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from app.services.scoring import LIVE_TRANSCRIPT_PLACEHOLDER

logger = logging.getLogger(__name__)


class MediaSource(Protocol):
    """A microphone-like input. ``stop`` returns the recorded bytes."""

    content_type: Optional[str]

    def start(self) -> None: ...

    def stop(self) -> bytes: ...

    def release(self) -> None: ...


class LiveTranscriber(Protocol):
    def start(self) -> None: ...

    def stop(self) -> str: ...


class MicrophoneBusyError(RuntimeError):
    pass


class MicrophoneLock:
    """Only one capture may hold the microphone at a time."""

    def __init__(self):
        self.owner: Optional[object] = None

    def acquire(self, owner: object):
        if self.owner is not None and self.owner is not owner:
            raise MicrophoneBusyError("Microphone is already in use by another recording")
        self.owner = owner

    def release(self, owner: object):
        if self.owner is owner:
            self.owner = None

    @property
    def locked(self) -> bool:
        return self.owner is not None


def normalize_live_transcript(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    text = text.strip()
    if not text or text == LIVE_TRANSCRIPT_PLACEHOLDER:
        return None
    return text


@dataclass
class CapturedAudio:
    data: bytes = b""
    content_type: Optional[str] = None
    transcript: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not self.data


class RecordingCapture:
    """Records one question's answer from a ``MediaSource``.

    Use as a context manager so the media tracks are released when the question is
    torn down, even if the recording was never stopped.
    """

    def __init__(
        self,
        source: MediaSource,
        lock: MicrophoneLock,
        transcriber: Optional[LiveTranscriber] = None,
        live_transcription: bool = True,
    ):
        self.source = source
        self.lock = lock
        self.transcriber = transcriber if live_transcription else None
        self.recording = False

    def __enter__(self) -> "RecordingCapture":
        return self

    def __exit__(self, *exc_info):
        self.release()

    def start(self):
        if self.recording:
            return
        self.lock.acquire(self)
        try:
            self.source.start()
        except Exception:
            self.lock.release(self)
            raise
        if self.transcriber is not None:
            self.transcriber.start()
        self.recording = True
        logger.debug("Recording started")

    def stop(self) -> CapturedAudio:
        if not self.recording:
            return CapturedAudio()

        transcript = None
        try:
            data = self.source.stop()
            if self.transcriber is not None:
                transcript = normalize_live_transcript(self.transcriber.stop())
        finally:
            self.release()

        logger.debug("Recording stopped: %d bytes, live transcript=%s", len(data), bool(transcript))
        return CapturedAudio(data=data, content_type=self.source.content_type, transcript=transcript)

    def discard(self):
        """Stop without keeping anything."""
        if self.recording:
            try:
                self.source.stop()
                if self.transcriber is not None:
                    self.transcriber.stop()
            finally:
                self.release()

    def release(self):
        if self.lock.owner is self or self.recording:
            self.source.release()
        self.recording = False
        self.lock.release(self)
