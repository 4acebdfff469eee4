"""
Timed-Text Service
Fetches captions from YouTube's timed-text endpoint.

Sweeps a prioritized language list, trying uploaded captions before
auto-generated (ASR) ones for each language.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import requests
from fastapi.concurrency import run_in_threadpool

from app.config import Settings
from app.services.vtt import vtt_to_text

logger = logging.getLogger(__name__)

# Language tags tried in order; "" means no lang parameter (any track)
CAPTION_LANGUAGES = ("en", "en-US", "de", "fr", "es", "ar", "tr", "pt", "hi", "ru")
TIMEDTEXT_LANGUAGES = CAPTION_LANGUAGES + ("",)

VTT_SIGNATURE = "WEBVTT"

UPLOADED = "uploaded"
ASR = "asr"


class TimedTextError(Exception):
    """Exception raised when a single timed-text request fails."""
    pass


@dataclass
class TimedTextResult:
    """Outcome of a timed-text sweep. Empty text means nothing usable was found."""
    text: str = ""
    source: str = ""
    reasons: list[str] = field(default_factory=list)


def language_label(lang: str) -> str:
    return lang or "any"


def source_tag(lang: str, kind: str) -> str:
    prefix = "timedtext-asr" if kind == ASR else "timedtext"
    return f"{prefix}({language_label(lang)})"


class TimedTextClient:
    """Client for the YouTube timed-text captions endpoint."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def build_params(self, video_id: str, lang: str, kind: str) -> dict:
        params = {"v": video_id, "fmt": "vtt"}
        if lang:
            params["lang"] = lang
        if kind == ASR:
            params["kind"] = "asr"
        return params

    def _get(self, video_id: str, params: dict) -> requests.Response:
        headers = {
            "User-Agent": "Mozilla/5.0",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": f"https://www.youtube.com/watch?v={video_id}",
        }
        return self.session.get(
            self.settings.timedtext_url,
            params=params,
            headers=headers,
            timeout=self.settings.http_timeout,
        )

    async def fetch_track(self, video_id: str, lang: str, kind: str) -> str:
        """
        Fetch and flatten a single caption track.

        Args:
            video_id: YouTube video ID
            lang: Language tag, or "" for any language
            kind: UPLOADED or ASR

        Returns:
            Flattened caption text

        Raises:
            TimedTextError: If the request fails or the track is unusable
        """
        params = self.build_params(video_id, lang, kind)
        try:
            response = await run_in_threadpool(self._get, video_id, params)
        except requests.RequestException as e:
            raise TimedTextError(f"request failed: {e}")

        if not response.ok:
            raise TimedTextError(str(response.status_code))
        if VTT_SIGNATURE not in response.text:
            raise TimedTextError(f"{response.status_code} no {VTT_SIGNATURE}")

        text = vtt_to_text(response.text)
        if len(text) <= self.settings.min_transcript_chars:
            raise TimedTextError(f"too short ({len(text)} chars)")
        return text

    async def fetch(
        self,
        video_id: str,
        languages: Sequence[str] = TIMEDTEXT_LANGUAGES
    ) -> TimedTextResult:
        """
        Try uploaded then ASR captions for each language until one is usable.

        Individual failures are recorded and never raised.

        Args:
            video_id: YouTube video ID
            languages: Language tags in priority order ("" = any)

        Returns:
            TimedTextResult with text and source on success, reasons otherwise
        """
        result = TimedTextResult()

        for lang in languages:
            for kind in (UPLOADED, ASR):
                try:
                    text = await self.fetch_track(video_id, lang, kind)
                except TimedTextError as e:
                    reason = f"timedtext {kind} {language_label(lang)} -> {e}"
                    logger.debug(reason)
                    result.reasons.append(reason)
                    continue

                result.text = text
                result.source = source_tag(lang, kind)
                logger.info(f"Found {result.source} captions for {video_id}")
                return result

        logger.info(f"No timed-text captions for {video_id} ({len(result.reasons)} attempts)")
        return result
