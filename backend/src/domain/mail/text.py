"""Light text helpers for mail bodies."""

import html
import re

_BLOCK_BREAK_RE = re.compile(r"(?i)<br\s*/?>|</p>|</div>|</tr>")
_SCRIPT_STYLE_RE = re.compile(r"(?is)<(script|style)\b.*?>.*?</\1>")
_TAG_RE = re.compile(r"<[^>]+>")


def html_to_text(markup: str) -> str:
    """Render HTML as plain text (best effort, keeps line structure)."""
    if not markup:
        return ""
    text = _SCRIPT_STYLE_RE.sub(" ", markup)
    text = _BLOCK_BREAK_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")
    return text


def normalize_newlines(text: str) -> str:
    """Convert CRLF / CR line endings to LF."""
    return (text or "").replace("\r\n", "\n").replace("\r", "\n")


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()
