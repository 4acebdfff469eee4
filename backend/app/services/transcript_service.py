"""
Transcript Service
Fetches a transcript for a YouTube video from the first source that has one.

Sources, in order:
1. YouTube timed-text captions (uploaded, then auto-generated)
2. yt-dlp subtitle download
3. yt-dlp audio download + OpenAI speech-to-text
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from app.config import Settings
from app.services.speech_service import SpeechTranscriber
from app.services.timedtext_service import TimedTextClient
from app.services.vtt import vtt_to_text
from app.services.ytdlp_service import YtDlpExtractor, remove_files

logger = logging.getLogger(__name__)

SOURCE_YTDLP = "yt-dlp"
SOURCE_SPEECH = "speech-fallback"


@dataclass
class TranscriptResult:
    text: str
    source: str


@dataclass
class DiagnosticEntry:
    step: str
    reasons: Optional[list[str]] = None
    error: Optional[str] = None


@dataclass
class DiagnosticTrail:
    """
    Record of every source tried for one request.

    Entries are only kept when enabled (debug requested). final_length is
    always tracked since it decides between the two "no transcript" errors.
    """
    enabled: bool = False
    tried: list[DiagnosticEntry] = field(default_factory=list)
    final_length: Optional[int] = None

    def record(
        self,
        step: str,
        reasons: Optional[list[str]] = None,
        error: Optional[str] = None
    ) -> None:
        if self.enabled:
            self.tried.append(DiagnosticEntry(step=step, reasons=reasons, error=error))


class TranscriptError(Exception):
    """Exception raised when no source produced a usable transcript."""

    message = "No captions available for this video."

    def __init__(self, trail: Optional[DiagnosticTrail] = None):
        self.trail = trail or DiagnosticTrail()
        super().__init__(self.message)


class NoTranscriptAvailable(TranscriptError):
    pass


class TranscriptTooShort(TranscriptError):
    message = "Transcript too short or empty."


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


class TranscriptService:
    """Runs the transcript sources in priority order and stops at the first hit."""

    def __init__(
        self,
        settings: Settings,
        timedtext: Optional[TimedTextClient] = None,
        extractor: Optional[YtDlpExtractor] = None,
        transcriber: Optional[SpeechTranscriber] = None
    ):
        self.settings = settings
        self.timedtext = timedtext or TimedTextClient(settings)
        self.extractor = extractor or YtDlpExtractor(settings)
        self.transcriber = transcriber or SpeechTranscriber(settings)

    async def aclose(self) -> None:
        """Release the HTTP clients held by the timed-text and speech sources."""
        self.timedtext.close()
        await self.transcriber.aclose()

    async def try_timedtext(
        self,
        video_id: str,
        trail: DiagnosticTrail
    ) -> Optional[TranscriptResult]:
        result = await self.timedtext.fetch(video_id)
        if result.text:
            return TranscriptResult(text=result.text, source=result.source)

        trail.record("timedtext", reasons=result.reasons)
        return None

    async def try_subtitles(
        self,
        video_id: str,
        trail: DiagnosticTrail
    ) -> Optional[TranscriptResult]:
        async with self.extractor.subtitles(watch_url(video_id)) as extraction:
            trail.record("yt-dlp subtitles", error=extraction.error)
            if extraction.path is None:
                return None

            vtt = await run_in_threadpool(
                extraction.path.read_text, encoding="utf-8", errors="replace"
            )

        text = vtt_to_text(vtt)
        if len(text) <= self.settings.min_transcript_chars:
            logger.info(f"yt-dlp subtitles for {video_id} too short ({len(text)} chars)")
            trail.final_length = len(text)
            trail.record("yt-dlp subtitles", error=f"too short ({len(text)} chars)")
            return None

        return TranscriptResult(text=text, source=SOURCE_YTDLP)

    async def try_speech(
        self,
        video_id: str,
        trail: DiagnosticTrail
    ) -> Optional[TranscriptResult]:
        if not self.transcriber.enabled:
            trail.record("speech", error="skipped: OPENAI_API_KEY not configured")
            return None

        async with self.extractor.audio(watch_url(video_id)) as extraction:
            trail.record("yt-dlp audio", error=extraction.error)
            if extraction.path is None:
                return None

            audio = await run_in_threadpool(extraction.path.read_bytes)
            remove_files([extraction.path])
            filename = extraction.path.name

        speech = await self.transcriber.transcribe(audio, filename)
        if not speech.text:
            trail.record("speech", error=speech.error)
            return None

        return TranscriptResult(text=speech.text, source=SOURCE_SPEECH)

    async def get_transcript(
        self,
        video_id: str,
        trail: Optional[DiagnosticTrail] = None
    ) -> TranscriptResult:
        """
        Get a transcript for a video from the first source that has one.

        Args:
            video_id: YouTube video ID
            trail: Trail to record attempts in (created disabled if omitted)

        Returns:
            TranscriptResult with text and the source that produced it

        Raises:
            TranscriptTooShort: If a caption file was found but had too little text
            NoTranscriptAvailable: If no source produced anything
        """
        if trail is None:
            trail = DiagnosticTrail()
        logger.info(f"Fetching transcript for {video_id}")

        for step in (self.try_timedtext, self.try_subtitles, self.try_speech):
            result = await step(video_id, trail)
            if result:
                logger.info(f"Transcript for {video_id} from {result.source} ({len(result.text)} chars)")
                return result

        logger.info(f"No transcript available for {video_id}")
        if trail.final_length is not None:
            raise TranscriptTooShort(trail)
        raise NoTranscriptAvailable(trail)
