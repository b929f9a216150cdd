"""Section slicing for the storefront's plain-text mail templates."""

import re
from typing import List, Sequence

from domain.mail.text import collapse_whitespace, normalize_newlines

PRODUCT_SECTION = "【商品情報】"

SECTION_END_MARKERS = (
    "【お届け先情報】",
    "【注文者情報】",
    "【ご請求金額】",
    "【お支払い情報】",
    "【配送情報】",
    "【注文情報】",
    "【注意事項】",
)

LOTTERY_TAG_RE = re.compile(r"^【抽選販売】\s*")
SHIPPING_SCHEDULE_RE = re.compile(r"【[^【】]*発送[^【】]*】\s*$")
JAN_RE = re.compile(r"(?<![0-9A-Za-z_])(\d{8,14})(?![0-9A-Za-z_])")
LEADING_SEPARATORS_RE = re.compile(r"^[-:：\s]+")


def section_lines(text: str, start_marker: str, end_markers: Sequence[str]) -> List[str]:
    """Non-empty, trimmed lines from ``start_marker`` up to the nearest end marker."""
    if not text:
        return []
    start = text.find(start_marker)
    if start == -1:
        return []

    end = len(text)
    for marker in end_markers:
        idx = text.find(marker, start + 1)
        if idx != -1 and idx < end:
            end = idx

    block = normalize_newlines(text[start:end])
    return [line.strip() for line in block.split("\n") if line.strip()]


def product_lines(text: str, end_markers: Sequence[str] = SECTION_END_MARKERS) -> List[str]:
    return section_lines(text, PRODUCT_SECTION, end_markers)


def clean_product_name(name: str, strip_schedule: bool = True) -> str:
    """Drop the leading 【抽選販売】 tag and, optionally, a trailing 【…発送…】 schedule."""
    if not name:
        return ""
    cleaned = LOTTERY_TAG_RE.sub("", name.strip())
    if strip_schedule:
        cleaned = SHIPPING_SCHEDULE_RE.sub("", cleaned)
    return collapse_whitespace(cleaned)


def find_jan(line: str) -> str:
    """First 8-14 digit run (JAN/EAN product code), or ''."""
    m = JAN_RE.search(line or "")
    return m.group(1) if m else ""


def strip_leading_separators(value: str) -> str:
    return LEADING_SEPARATORS_RE.sub("", value or "").strip()
