from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "Transcript Relay"
    port: int = 8080
    log_level: str = "INFO"

    # Auth (empty disables the bearer check)
    internal_token: str = ""

    # OpenAI speech-to-text (empty disables the audio fallback)
    openai_api_key: str = ""
    transcription_model: str = "whisper-1"

    # YouTube timed-text endpoint
    timedtext_url: str = "https://www.youtube.com/api/timedtext"

    # yt-dlp
    ytdlp_binary: str = "yt-dlp"
    ytdlp_cookies_b64: str = ""
    max_output_bytes: int = 1024 * 1024 * 20

    # Outbound timeouts in seconds; None waits indefinitely
    http_timeout: Optional[float] = None
    ytdlp_timeout: Optional[float] = None

    # Shortest transcript accepted from any source
    min_transcript_chars: int = 30

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
