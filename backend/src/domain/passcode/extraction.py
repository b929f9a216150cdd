"""Passcode extraction from unstructured mail text.

Implements a prioritized, first-match-wins list of pattern matchers. Stricter
patterns come first because they have the lowest false-positive rate; the bare
six-digit fallback is tried only when every labelled pattern misses.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

PASSCODE_LABEL = "パスコード"

# Maximum characters allowed between the label and the digits for the
# "label near digits" pattern (markup or line breaks in between).
LABEL_GAP_CHARS = 240

_SIX_DIGITS = r"(?<![0-9])([0-9]{6})(?![0-9])"


@dataclass(frozen=True)
class PasscodeMatcher:
    """A named regex whose first group captures the code."""

    name: str
    pattern: "re.Pattern[str]"

    def match(self, text: str) -> Optional[str]:
        m = self.pattern.search(text)
        return m.group(1) if m else None


@dataclass(frozen=True)
class PasscodeMatch:
    code: str
    matcher: str


def build_matchers(label: str = PASSCODE_LABEL, gap: int = LABEL_GAP_CHARS) -> Tuple[PasscodeMatcher, ...]:
    """Build the ordered matcher list for a passcode label.

    Order:
        1. bracketed: 【label】123456
        2. separator: label: 123456 / label：123456 / label 123456
        3. nearby:    label, up to ``gap`` chars, then 123456
        4. bare:      any standalone run of exactly six digits
    """
    lbl = re.escape(label)
    return (
        PasscodeMatcher("bracketed", re.compile(rf"【\s*{lbl}\s*】\s*{_SIX_DIGITS}")),
        PasscodeMatcher("separator", re.compile(rf"{lbl}\s*[:：]?\s*{_SIX_DIGITS}")),
        PasscodeMatcher("nearby", re.compile(rf"{lbl}[\s\S]{{0,{gap}}}?{_SIX_DIGITS}")),
        # ASCII word boundaries: Japanese characters must not glue to digits
        PasscodeMatcher("bare", re.compile(r"\b([0-9]{6})\b", re.ASCII)),
    )


DEFAULT_MATCHERS = build_matchers()


def normalize_text(text: str) -> str:
    """Drop carriage returns and collapse runs of spaces/tabs."""
    return re.sub(r"[ \t]+", " ", str(text).replace("\r", ""))


def match_passcode(
    text: Optional[str],
    matchers: Sequence[PasscodeMatcher] = DEFAULT_MATCHERS,
) -> Optional[PasscodeMatch]:
    """Run matchers in order and return the first hit with the matcher name."""
    if not text:
        return None
    norm = normalize_text(text)
    for matcher in matchers:
        code = matcher.match(norm)
        if code:
            return PasscodeMatch(code=code, matcher=matcher.name)
    return None


def extract_passcode(
    text: Optional[str],
    matchers: Sequence[PasscodeMatcher] = DEFAULT_MATCHERS,
) -> Optional[str]:
    """Extract a six-digit passcode from text, or None.

    Example:
        >>> extract_passcode("【パスコード】345678 please use this code")
        '345678'
        >>> extract_passcode("パスコード：987654")
        '987654'
    """
    found = match_passcode(text, matchers)
    return found.code if found else None
