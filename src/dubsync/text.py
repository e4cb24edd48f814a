"""Text cleanup applied to cue text before synthesis and cache keying."""

import html
import re

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Strip markup from subtitle text and collapse whitespace.

    Subtitle files often carry formatting tags (<i>, <font ...>) and HTML
    entities that a speech engine would read aloud or reject.

    Args:
        text: Raw cue text

    Returns:
        Text ready to send to a TTS provider
    """
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """Normalize text for cache identity: trim, collapse whitespace, lowercase."""
    return _WS_RE.sub(" ", text.strip()).lower()


def preview(text: str, limit: int = 50) -> str:
    """Shorten text for log lines."""
    return text[:limit] + ("..." if len(text) > limit else "")
