"""
Speech Service
Transcribes extracted audio with the OpenAI speech-to-text API.

Last-resort source for videos that have no captions at all.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI

from app.config import Settings

logger = logging.getLogger(__name__)


class SpeechServiceError(Exception):
    """Exception raised when speech transcription fails."""
    pass


@dataclass
class SpeechResult:
    text: str = ""
    error: Optional[str] = None


class SpeechTranscriber:
    """Thin wrapper around the OpenAI audio transcription endpoint."""

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.settings.openai_api_key)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.http_timeout,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the OpenAI client if one was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _request(self, audio: bytes, filename: str) -> str:
        try:
            response = await self.client.audio.transcriptions.create(
                model=self.settings.transcription_model,
                file=(filename, audio),
                response_format="text",
            )
        except Exception as e:
            raise SpeechServiceError(f"transcription request failed: {e}")

        # response_format="text" returns a bare string
        text = response if isinstance(response, str) else getattr(response, "text", "")
        return (text or "").strip()

    async def transcribe(self, audio: bytes, filename: str = "audio.mp3") -> SpeechResult:
        """
        Transcribe audio bytes to plain text.

        Failures are returned in SpeechResult.error rather than raised, so
        the caller can treat this like any other exhausted source.

        Args:
            audio: Raw audio file content
            filename: Name sent with the upload (the API infers format from it)

        Returns:
            SpeechResult with text on success, error otherwise
        """
        if not self.enabled:
            return SpeechResult(error="OPENAI_API_KEY not configured")

        logger.info(f"Transcribing {len(audio)} bytes with {self.settings.transcription_model}")

        try:
            text = await self._request(audio, filename)
        except SpeechServiceError as e:
            logger.warning(str(e))
            return SpeechResult(error=str(e))

        if len(text) <= self.settings.min_transcript_chars:
            return SpeechResult(error=f"transcription too short ({len(text)} chars)")

        return SpeechResult(text=text)
