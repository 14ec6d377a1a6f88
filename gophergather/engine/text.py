"""
gophergather.engine.text — Text Presentation Helpers
=====================================================

Sanitizing user-supplied text and shaping it for cards and avatars.
"""

from __future__ import annotations

import re
from html import unescape
from html.parser import HTMLParser

from gophergather.constants import DESCRIPTION_PLACEHOLDER, DESCRIPTION_PREVIEW_LENGTH

_WS_RE = re.compile(r"\s+")


class _TextExtractor(HTMLParser):
    """Collects text nodes; drops tags, and the bodies of script/style."""

    _SKIP = {"script", "style"}

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._skipping = 0

    def handle_starttag(self, tag, attrs):
        if tag in self._SKIP:
            self._skipping += 1

    def handle_endtag(self, tag):
        if tag in self._SKIP and self._skipping:
            self._skipping -= 1

    def handle_data(self, data):
        if not self._skipping:
            self.parts.append(data)


def sanitize_input(text: str | None) -> str:
    """Strip HTML markup and return the plain text content.

    >>> sanitize_input("<b>Free</b> pizza &amp; games")
    'Free pizza & games'
    """
    if not text:
        return ""
    if "<" not in text:
        return unescape(text)
    parser = _TextExtractor()
    parser.feed(text)
    parser.close()
    return "".join(parser.parts)


def description_preview(text: str | None, limit: int = DESCRIPTION_PREVIEW_LENGTH) -> str:
    """One-line card description: whitespace collapsed, cut to *limit* chars."""
    if not text:
        return DESCRIPTION_PLACEHOLDER
    cleaned = _WS_RE.sub(" ", text).strip()
    if not cleaned:
        return DESCRIPTION_PLACEHOLDER
    if len(cleaned) > limit:
        return cleaned[: limit - 3] + "..."
    return cleaned


def email_local_part(email: str | None) -> str:
    return (email or "").split("@")[0]


def display_name(
    first: str | None = None,
    last: str | None = None,
    email: str | None = None,
    full: str | None = None,
) -> str:
    """Best human-readable name: full name, first + last, or the e-mail's
    local part capitalized."""
    if full and full.strip():
        return full.strip()
    joined = " ".join(p.strip() for p in (first, last) if p and p.strip())
    if joined:
        return joined
    local = email_local_part(email)
    return local[:1].upper() + local[1:] if local else "Anonymous"


def initials(first: str | None, last: str | None, email: str | None) -> str:
    f = (first or "").strip()[:1].upper()
    la = (last or "").strip()[:1].upper()
    if f or la:
        return f + la
    return ((email or "?")[:1] or "?").upper()
