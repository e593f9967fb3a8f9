# core/transcriber.py
import asyncio
import logging
import mimetypes
from typing import Optional
import httpx
from config.settings import settings
from core.entities import MediaHandle
from util.functions import format_bytes
from util.timing import timed

logger = logging.getLogger(__name__)


class TranscriptionError(RuntimeError):
    pass


def _content_type(handle: MediaHandle) -> str:
    guessed, _ = mimetypes.guess_type(handle.path.name)
    return guessed or "application/octet-stream"


class OpenAITranscriber:
    """
    Transcribe stage: upload the audio file to an OpenAI-compatible
    /audio/transcriptions endpoint and return plain text.
    """

    def __init__(
        self,
        *,
        api_key: str = settings.OPENAI_API_KEY,
        api_url: str = settings.TRANSCRIBE_API_URL,
        model: str = settings.TRANSCRIBE_MODEL,
        max_bytes: int = settings.TRANSCRIBE_MAX_MB * 1024 * 1024,
        timeout: Optional[float] = settings.HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._url = api_url
        self._model = model
        self._max_bytes = max_bytes
        self._timeout = httpx.Timeout(timeout, connect=10.0)

    async def transcribe(self, handle: MediaHandle) -> str:
        if handle.size_bytes > self._max_bytes:
            raise TranscriptionError(
                f"audio too large for transcription: {format_bytes(handle.size_bytes)}"
            )
        audio = await asyncio.to_thread(handle.path.read_bytes)

        with timed(logger, "ai.transcribe", model=self._model, size=len(audio)):
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.post(
                    self._url,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    data={"model": self._model, "response_format": "text"},
                    files={"file": (handle.path.name, audio, _content_type(handle))},
                )
                r.raise_for_status()

        text = r.text.strip()
        if not text:
            raise TranscriptionError("empty transcript")
        logger.info("ai.transcribe.ok words=%d", len(text.split()))
        return text
