"""Tests for the timed-text captions client."""

import asyncio
from unittest.mock import MagicMock

import requests

from app.services.timedtext_service import (
    TIMEDTEXT_LANGUAGES,
    TimedTextClient,
    source_tag,
)
from conftest import SAMPLE_TEXT, SAMPLE_VTT, SHORT_VTT, VIDEO_ID


def make_response(status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = text
    return response


def make_session(responder):
    """Session whose get() answers via responder(params)."""
    session = MagicMock()
    session.get.side_effect = lambda url, params, headers, timeout: responder(params)
    return session


class TestBuildParams:
    """Tests for query parameter construction."""

    def test_uploaded_with_language(self, settings):
        client = TimedTextClient(settings, session=MagicMock())
        params = client.build_params(VIDEO_ID, "en", "uploaded")
        assert params == {"v": VIDEO_ID, "fmt": "vtt", "lang": "en"}

    def test_asr_any_language(self, settings):
        client = TimedTextClient(settings, session=MagicMock())
        params = client.build_params(VIDEO_ID, "", "asr")
        assert params == {"v": VIDEO_ID, "fmt": "vtt", "kind": "asr"}


class TestSourceTag:

    def test_tags(self):
        assert source_tag("en", "uploaded") == "timedtext(en)"
        assert source_tag("de", "asr") == "timedtext-asr(de)"
        assert source_tag("", "asr") == "timedtext-asr(any)"


class TestFetch:
    """Tests for the language/kind sweep."""

    def test_first_uploaded_track_wins(self, settings):
        session = make_session(lambda params: make_response(200, SAMPLE_VTT))
        client = TimedTextClient(settings, session=session)

        result = asyncio.run(client.fetch(VIDEO_ID))

        assert result.text == SAMPLE_TEXT
        assert result.source == "timedtext(en)"
        assert session.get.call_count == 1

    def test_sends_referer_and_user_agent(self, settings):
        session = make_session(lambda params: make_response(200, SAMPLE_VTT))
        client = TimedTextClient(settings, session=session)

        asyncio.run(client.fetch(VIDEO_ID))

        headers = session.get.call_args.kwargs["headers"]
        assert headers["User-Agent"] == "Mozilla/5.0"
        assert headers["Referer"] == f"https://www.youtube.com/watch?v={VIDEO_ID}"

    def test_falls_back_to_asr(self, settings):
        """Test ASR captions are used when uploaded ones are missing."""
        def responder(params):
            if params.get("kind") == "asr" and params.get("lang") == "de":
                return make_response(200, SAMPLE_VTT)
            return make_response(404, "")

        client = TimedTextClient(settings, session=make_session(responder))
        result = asyncio.run(client.fetch(VIDEO_ID))

        assert result.source == "timedtext-asr(de)"
        # en, en-US uploaded+asr, then de uploaded, then de asr
        assert len(result.reasons) == 5

    def test_rejects_body_without_signature(self, settings):
        """Test a 200 response that is not WebVTT is never accepted."""
        body = "<html>" + "x" * 500 + "</html>"
        client = TimedTextClient(settings, session=make_session(lambda p: make_response(200, body)))

        result = asyncio.run(client.fetch(VIDEO_ID))

        assert result.text == ""
        assert result.source == ""
        assert all("no WEBVTT" in reason for reason in result.reasons)

    def test_rejects_short_tracks(self, settings):
        client = TimedTextClient(settings, session=make_session(lambda p: make_response(200, SHORT_VTT)))

        result = asyncio.run(client.fetch(VIDEO_ID))

        assert result.text == ""
        assert "too short" in result.reasons[0]

    def test_network_errors_are_recorded(self, settings):
        """Test a failing request does not stop the sweep."""
        def responder(params):
            raise requests.ConnectionError("connection reset")

        session = make_session(responder)
        client = TimedTextClient(settings, session=session)
        result = asyncio.run(client.fetch(VIDEO_ID))

        assert result.text == ""
        assert session.get.call_count == 2 * len(TIMEDTEXT_LANGUAGES)
        assert "connection reset" in result.reasons[0]

    def test_attempts_bounded_by_languages(self, settings):
        session = make_session(lambda p: make_response(404, ""))
        client = TimedTextClient(settings, session=session)

        result = asyncio.run(client.fetch(VIDEO_ID, languages=["en", ""]))

        assert session.get.call_count == 4
        assert result.reasons == [
            "timedtext uploaded en -> 404",
            "timedtext asr en -> 404",
            "timedtext uploaded any -> 404",
            "timedtext asr any -> 404",
        ]
