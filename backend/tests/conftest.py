"""
Pytest configuration and shared fixtures.
"""
from pathlib import Path

import pytest

from app.config import Settings
from app.services.ytdlp_service import CommandResult

SAMPLE_VTT = """WEBVTT
Kind: captions
Language: en

1
00:00:00.000 --> 00:00:02.500 align:start position:0%
Never gonna give you up

2
00:00:02.500 --> 00:00:05.000
Never gonna let you down

3
00:00:05.000 --> 00:00:07.000
Never gonna run around and desert you
"""

SAMPLE_TEXT = (
    "Never gonna give you up Never gonna let you down "
    "Never gonna run around and desert you"
)

SHORT_VTT = """WEBVTT

00:00:00.000 --> 00:00:01.000
[Music]
"""

VIDEO_ID = "dQw4w9WgXcQ"


def make_settings(**overrides) -> Settings:
    values = {
        "internal_token": "",
        "openai_api_key": "",
        "ytdlp_cookies_b64": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


class FakeYtDlp:
    """
    Stand-in for run_command that writes the files yt-dlp would have written.

    files maps a filename suffix (".en.vtt", ".mp3") to its content.
    """

    def __init__(self, files=None, returncode=0, stderr=""):
        self.files = files or {}
        self.returncode = returncode
        self.stderr = stderr
        self.calls = []
        self.cookie_contents = []
        self.cookie_modes = []

    async def __call__(self, cmd, max_output_bytes, timeout=None):
        self.calls.append(list(cmd))
        if "--cookies" in cmd:
            cookie_path = Path(cmd[cmd.index("--cookies") + 1])
            self.cookie_contents.append(cookie_path.read_bytes())
            self.cookie_modes.append(cookie_path.stat().st_mode & 0o777)

        base = cmd[cmd.index("-o") + 1].replace(".%(ext)s", "")
        for suffix, content in self.files.items():
            path = Path(f"{base}{suffix}")
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")

        return CommandResult(returncode=self.returncode, stdout="", stderr=self.stderr)


@pytest.fixture
def fake_ytdlp(monkeypatch):
    """Install a FakeYtDlp; call the returned factory to configure it."""

    def install(**kwargs):
        fake = FakeYtDlp(**kwargs)
        monkeypatch.setattr("app.services.ytdlp_service.run_command", fake)
        return fake

    return install
