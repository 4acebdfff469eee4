"""
yt-dlp Service
Downloads subtitle and audio files for a video with the yt-dlp command-line tool.

Every call writes into the temp directory under a fresh random name
(yt-<hex>.*), so concurrent requests never touch each other's files.
Files are removed when the caller leaves the extraction context.
"""

import asyncio
import base64
import binascii
import logging
import os
import secrets
import shutil
import tempfile
from contextlib import asynccontextmanager, contextmanager, suppress
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Iterable, Iterator, Optional, Sequence

from app.config import Settings
from app.services.timedtext_service import CAPTION_LANGUAGES

logger = logging.getLogger(__name__)

AUDIO_FORMAT = "mp3"
SUBTITLE_FORMAT = "vtt"
READ_CHUNK_SIZE = 64 * 1024

# yt-dlp names subtitle files by detected language; probed in this order
SUBTITLE_CANDIDATES = tuple(
    f".{lang}.{SUBTITLE_FORMAT}" for lang in CAPTION_LANGUAGES
) + (f".{SUBTITLE_FORMAT}",)
AUDIO_CANDIDATES = (f".{AUDIO_FORMAT}",)

SUBTITLE_ARGS = [
    "--skip-download",
    "--no-warnings",
    "--write-auto-sub",
    "--write-sub",
    "--sub-format", SUBTITLE_FORMAT,
    "--sub-langs", "all,-live_chat",
]

AUDIO_ARGS = [
    "--extract-audio",
    "--audio-format", AUDIO_FORMAT,
    "--no-playlist",
    "--no-warnings",
    "--quiet",
]


class ExtractionError(Exception):
    """Exception raised when a yt-dlp invocation cannot complete."""
    pass


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


@dataclass
class ExtractionResult:
    """
    Outcome of one yt-dlp invocation.

    path is the first candidate file that exists, if any. error holds the
    tool's failure output; a file may still have been written when the tool
    exits non-zero.
    """
    path: Optional[Path] = None
    error: Optional[str] = None


def check_dependencies(binary: str = "yt-dlp") -> dict:
    """
    Check if the yt-dlp binary is available.

    Returns:
        dict with 'yt_dlp' boolean status
    """
    return {"yt_dlp": shutil.which(binary) is not None}


async def _read_limited(stream: asyncio.StreamReader, limit: int) -> bytes:
    chunks = []
    size = 0
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise ExtractionError(f"output exceeded {limit} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def run_command(
    args: Sequence[str],
    max_output_bytes: int,
    timeout: Optional[float] = None
) -> CommandResult:
    """
    Run a command to completion, capturing stdout and stderr.

    Args:
        args: Program and arguments
        max_output_bytes: Limit applied to each output stream
        timeout: Seconds to wait before killing the process (None = no limit)

    Returns:
        CommandResult; a non-zero exit is returned, not raised

    Raises:
        ExtractionError: If the program cannot be started, output overflows or it times out
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise ExtractionError(f"{args[0]} not found. Install with: pip install yt-dlp")
    except OSError as e:
        raise ExtractionError(f"{args[0]} could not be started: {e}")

    readers = asyncio.gather(
        _read_limited(proc.stdout, max_output_bytes),
        _read_limited(proc.stderr, max_output_bytes),
    )
    try:
        stdout, stderr = await asyncio.wait_for(readers, timeout)
    except (ExtractionError, asyncio.TimeoutError) as e:
        with suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        if isinstance(e, asyncio.TimeoutError):
            raise ExtractionError(f"{args[0]} timed out after {timeout}s")
        raise

    returncode = await proc.wait()
    return CommandResult(
        returncode=returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


def remove_files(paths: Iterable[Path]) -> None:
    """Delete files, ignoring any that are missing or cannot be removed."""
    for path in paths:
        with suppress(OSError):
            path.unlink(missing_ok=True)


class YtDlpExtractor:
    """Runs yt-dlp in subtitle or audio mode and tracks the files it writes."""

    def __init__(self, settings: Settings, temp_dir: Optional[Path] = None):
        self.settings = settings
        self.temp_dir = Path(temp_dir or tempfile.gettempdir())

    def new_session_id(self) -> str:
        return secrets.token_hex(6)

    @contextmanager
    def cookie_file(self, session_id: str) -> Iterator[Optional[Path]]:
        """
        Write the configured cookie blob to a temp file for one invocation.

        Yields None when no cookies are configured or the blob is not valid
        base64. The file is deleted on exit whatever the outcome.
        """
        data = None
        if self.settings.ytdlp_cookies_b64:
            try:
                data = base64.b64decode(self.settings.ytdlp_cookies_b64, validate=True)
            except (binascii.Error, ValueError):
                logger.warning("YTDLP_COOKIES_B64 is not valid base64, continuing without cookies")

        if not data:
            yield None
            return

        fd, name = tempfile.mkstemp(
            prefix=f"yt-cookies-{session_id}-", suffix=".txt", dir=self.temp_dir
        )
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            yield path
        finally:
            remove_files([path])

    def build_command(
        self,
        url: str,
        base: Path,
        mode_args: Sequence[str],
        cookies: Optional[Path] = None
    ) -> list[str]:
        cmd = [
            self.settings.ytdlp_binary,
            url,
            *mode_args,
            "-o", f"{base}.%(ext)s",
        ]
        if cookies:
            cmd.extend(["--cookies", str(cookies)])
        return cmd

    async def _invoke(
        self,
        url: str,
        base: Path,
        session_id: str,
        mode_args: Sequence[str]
    ) -> Optional[str]:
        with self.cookie_file(session_id) as cookies:
            cmd = self.build_command(url, base, mode_args, cookies)
            result = await run_command(
                cmd,
                max_output_bytes=self.settings.max_output_bytes,
                timeout=self.settings.ytdlp_timeout,
            )

        if result.returncode != 0:
            return result.stderr.strip() or result.stdout.strip() or f"exit code {result.returncode}"
        return None

    def _artifacts(self, base: Path, candidates: Sequence[Path]) -> set[Path]:
        return set(candidates) | set(self.temp_dir.glob(f"{base.name}.*"))

    @asynccontextmanager
    async def _extract(
        self,
        url: str,
        mode_args: Sequence[str],
        suffixes: Sequence[str]
    ) -> AsyncIterator[ExtractionResult]:
        session_id = self.new_session_id()
        base = self.temp_dir / f"yt-{session_id}"
        candidates = [Path(f"{base}{suffix}") for suffix in suffixes]
        result = ExtractionResult()

        try:
            try:
                result.error = await self._invoke(url, base, session_id, mode_args)
            except ExtractionError as e:
                result.error = str(e)

            if result.error:
                logger.warning(f"yt-dlp failed for {url}: {result.error[:200]}")

            result.path = next((p for p in candidates if p.exists()), None)
            yield result
        finally:
            remove_files(self._artifacts(base, candidates))

    def subtitles(self, url: str):
        """
        Download uploaded and auto-generated subtitles as WebVTT.

        Usage:
            async with extractor.subtitles(url) as result:
                if result.path: ...

        All files written by the call are removed when the block exits.
        """
        return self._extract(url, SUBTITLE_ARGS, SUBTITLE_CANDIDATES)

    def audio(self, url: str):
        """Download the audio track as MP3. Same cleanup contract as subtitles()."""
        return self._extract(url, AUDIO_ARGS, AUDIO_CANDIDATES)
