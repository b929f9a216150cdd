"""Shipping-notification report.

Scrapes the carrier tracking link, waybill number, delivery address and the
shipped products from "商品が出荷されました" mails.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from domain.mail.addresses import mapping_targets
from domain.mail.models import CandidateMessage
from domain.mail.text import normalize_newlines

from .orders import display_date
from .sections import SECTION_END_MARKERS, clean_product_name, find_jan, product_lines, strip_leading_separators

SHIPPING_SUBJECT = "【ポケモンセンターオンライン】商品が出荷されました"

TRACKING_URL_RE = re.compile(r"https://member\.kms\.kuronekoyamato\.co\.jp/parcel/detail\?pno=[A-Za-z0-9]+")
TRACKING_PNO_RE = re.compile(r"pno=([0-9\-]{5,})")

_WAYBILL_LABEL = r"(送り状番号|お問い合わせ伝票番号)"
WAYBILL_PATTERNS = (
    # label：123456789012
    re.compile(_WAYBILL_LABEL + r"[：:]\s*([0-9\-]{5,})"),
    # label</th><td>123456789012
    re.compile(_WAYBILL_LABEL + r"[^0-9]{0,50}([0-9\-]{5,})"),
    # label on one line, number on the next
    re.compile(_WAYBILL_LABEL + r"[^0-9\r\n]{0,10}[\r\n]+[^\r\n]*?([0-9\-]{5,})"),
)

ADDRESS_LABEL = "お届け先"
ADDRESS_STOP_WORDS = ("お支払い方法", "ご注文商品", "ご注文内容", "配送情報", "注文情報")

SHIPPING_END_MARKERS = SECTION_END_MARKERS + ("【お届け先】", "お届け先", "配送情報")

SHIPPING_QTY_RE = re.compile(r"(\d+)\s*個")
SHIPPING_PRICE_RE = re.compile(r"([0-9,]+)\s*円")

SHIPPING_COLUMNS = (
    ("Date", "date", 28),
    ("To", "to", 30),
    ("WaybillNo", "waybill_no", 18),
    ("Product Name", "product_name", 70),
    ("Price", "price", 12),
    ("Address", "address", 55),
    ("TrackingUrl", "tracking_url", 55),
)


@dataclass(frozen=True)
class ShippingRow:
    date: str
    to: str
    waybill_no: str = ""
    product_name: str = ""
    price: str = ""
    address: str = ""
    tracking_url: str = ""


def extract_tracking_url(text: str) -> str:
    m = TRACKING_URL_RE.search(text or "")
    return m.group(0) if m else ""


def extract_waybill_no(text: str, tracking_url: Optional[str] = None) -> str:
    """Waybill number from the labelled field, else the numeric pno of the tracking URL."""
    text = text or ""
    for pattern in WAYBILL_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(2)
    if tracking_url:
        m = TRACKING_PNO_RE.search(tracking_url)
        if m:
            return m.group(1)
    return ""


def extract_address(text: str) -> str:
    """Delivery address block after お届け先: 'name 〒zip address lines'."""
    if not text:
        return ""
    lines = [line.strip() for line in normalize_newlines(text).split("\n")]
    start = next((i for i, line in enumerate(lines) if ADDRESS_LABEL in line), -1)
    if start == -1:
        return ""

    name = ""
    zip_code = ""
    address_lines = []
    for line in lines[start + 1:]:
        if line.startswith("【") or any(word in line for word in ADDRESS_STOP_WORDS):
            break
        if not line:
            continue
        if not name and "様" in line:
            name = line
            continue
        if not zip_code and line.startswith("〒"):
            zip_code = line
            continue
        address_lines.append(line)

    parts = [p for p in (name, zip_code, " ".join(address_lines)) if p]
    return " ".join(parts)


def shipping_product_lines(text: str) -> List[str]:
    """Product lines of a shipping mail. These carry price (円) and qty (個), no 小計."""
    return [line for line in product_lines(text, SHIPPING_END_MARKERS) if "円" in line and "個" in line]


def parse_shipping_line(line: str) -> Tuple[str, str]:
    """Return (product name, price without 円) for a line like
    '9900000007003 【抽選販売】XXXX BOX 5,400円 1個'.
    """
    jan = find_jan(line)
    qty_match = SHIPPING_QTY_RE.search(line)
    price_match = SHIPPING_PRICE_RE.search(line)
    price = price_match.group(1) if price_match else ""

    name = line
    if jan:
        name = name.replace(jan, "", 1).strip()
    if price:
        name = re.sub(re.escape(price) + r"\s*円", "", name, count=1).strip()
    if qty_match:
        name = re.sub(re.escape(qty_match.group(1)) + r"\s*個", "", name, count=1).strip()
    name = clean_product_name(strip_leading_separators(name), strip_schedule=False)
    return name, price


def _unique(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def extract_products_and_prices(text: str) -> Tuple[str, str]:
    """All product names and prices, de-duplicated in order and joined with ' / '."""
    parsed = [parse_shipping_line(line) for line in shipping_product_lines(text)]
    names = _unique(name for name, _ in parsed)
    prices = _unique(price for _, price in parsed)
    return " / ".join(names), " / ".join(prices)


@dataclass
class ShippingReport:
    rows: List[ShippingRow] = field(default_factory=list)
    matched_messages: int = 0
    missing: dict = field(default_factory=lambda: {"product": 0, "address": 0, "waybill": 0, "url": 0})

    def add_message(self, message: CandidateMessage) -> None:
        self.matched_messages += 1
        text = message.full_text()

        tracking_url = extract_tracking_url(text)
        waybill_no = extract_waybill_no(text, tracking_url)
        address = extract_address(text)
        product_name, price = extract_products_and_prices(text)
        date = display_date(message)

        targets = mapping_targets(message.envelope.sender_address, message.envelope.to_addresses or message.to)
        for to in targets:
            self.rows.append(
                ShippingRow(
                    date=date,
                    to=to,
                    waybill_no=waybill_no,
                    product_name=product_name,
                    price=price,
                    address=address,
                    tracking_url=tracking_url,
                )
            )
            if not product_name:
                self.missing["product"] += 1
            if not address:
                self.missing["address"] += 1
            if not waybill_no:
                self.missing["waybill"] += 1
            if not tracking_url:
                self.missing["url"] += 1

    def add_messages(self, messages: Iterable[CandidateMessage]) -> "ShippingReport":
        for message in messages:
            self.add_message(message)
        return self

    def summary(self) -> dict:
        return {
            "matched_messages": self.matched_messages,
            "rows": len(self.rows),
            "missing_product": self.missing["product"],
            "missing_address": self.missing["address"],
            "missing_waybill": self.missing["waybill"],
            "missing_url": self.missing["url"],
        }
