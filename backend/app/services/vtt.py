"""
WebVTT to plain text.

Flattens a caption document into a single line of text with no header,
cue numbers, timestamps or inline tags.
"""

import re

HEADER = re.compile(r"^WEBVTT")
HEADER_FIELD = re.compile(r"^(Kind|Language):")
CUE_NUMBER = re.compile(r"^\d+$")
TIMESTAMP = re.compile(r"^\d{2}:\d{2}:\d{2}\.\d{3}")
CUE_SEPARATOR = "-->"

# Inline tags written by auto-generated tracks: <00:00:01.520>, <c>, <c.colorE5E5E5>, </c>
INLINE_TAG = re.compile(r"</?c(?:\.[^>\s]*)?>|<\d{2}:\d{2}:\d{2}\.\d{3}>")
WHITESPACE = re.compile(r"\s+")


def _keep(line: str) -> bool:
    return not (
        not line
        or HEADER.match(line)
        or CUE_NUMBER.match(line)
        or TIMESTAMP.match(line)
        or CUE_SEPARATOR in line
    )


def vtt_to_text(vtt: str) -> str:
    """
    Convert a WebVTT document to plain text.

    Kind:/Language: fields are only dropped in the header block (between
    WEBVTT and the first blank line); in cue text they are kept.
    Auto-generated tracks repeat the previous caption line at the top of each
    cue, so consecutive duplicate lines are dropped.

    Args:
        vtt: Raw WebVTT content

    Returns:
        Flattened text, or an empty string if there were no cues
    """
    lines = []
    in_header = False
    for raw in vtt.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        line = INLINE_TAG.sub("", raw).strip()
        if HEADER.match(line):
            in_header = True
            continue
        if not line or CUE_SEPARATOR in line:
            in_header = False
        if in_header and HEADER_FIELD.match(line):
            continue
        if not _keep(line):
            continue
        if lines and lines[-1] == line:
            continue
        lines.append(line)

    return WHITESPACE.sub(" ", " ".join(lines)).strip()
