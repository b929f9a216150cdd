"""Order-completion report.

One row per product line of every "注文完了のお知らせ" mail. A mail without a
parsable product line still yields a row (date and recipient only) so every
matched message is traceable in the export.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List

from domain.mail.addresses import mapping_targets
from domain.mail.models import CandidateMessage

from .sections import clean_product_name, find_jan, product_lines, strip_leading_separators

ORDER_SUBJECT = "[ポケモンセンターオンライン]注文完了のお知らせ"

QTY_RE = re.compile(r"\((\d+)\s*個\)")
SUBTOTAL_RE = re.compile(r"小計\s*([0-9,]+円)")


@dataclass(frozen=True)
class OrderLine:
    jan: str
    name: str
    qty: str
    subtotal: str
    raw: str


@dataclass(frozen=True)
class OrderRow:
    date: str
    to: str
    jan: str = ""
    name: str = ""
    qty: str = ""
    subtotal: str = ""


ORDER_COLUMNS = (
    ("Date", "date", 28),
    ("To", "to", 30),
    ("JAN", "jan", 16),
    ("Product Name", "name", 70),
    ("Qty", "qty", 8),
    ("Subtotal", "subtotal", 12),
)


def order_product_lines(text: str) -> List[str]:
    """Product lines of the 【商品情報】 block; only lines carrying a 小計 subtotal."""
    return [line for line in product_lines(text) if "小計" in line]


def parse_order_line(line: str) -> OrderLine:
    """Parse a product line (best effort).

    Example line:
        9900000006808 【抽選販売】ポケモンカードゲーム BOX【2026年2月中旬発送予定】 (1個) 小計 5,500円
    """
    jan = find_jan(line)
    qty_match = QTY_RE.search(line)
    subtotal_match = SUBTOTAL_RE.search(line)

    name = line
    if jan:
        name = name.replace(jan, "", 1).strip()
    name = QTY_RE.sub("", name, count=1).strip()
    name = SUBTOTAL_RE.sub("", name, count=1).strip()
    name = clean_product_name(strip_leading_separators(name))

    return OrderLine(
        jan=jan,
        name=name,
        qty=qty_match.group(1) if qty_match else "",
        subtotal=subtotal_match.group(1) if subtotal_match else "",
        raw=line,
    )


def display_date(message: CandidateMessage) -> str:
    if message.date_header:
        return message.date_header.strip()
    if message.received_at is not None:
        return message.received_at.strftime("%a, %d %b %Y %H:%M:%S GMT")
    return ""


@dataclass
class OrderReport:
    rows: List[OrderRow] = field(default_factory=list)
    matched_messages: int = 0
    product_lines: int = 0
    messages_without_products: int = 0

    def add_message(self, message: CandidateMessage) -> None:
        self.matched_messages += 1
        targets = mapping_targets(message.envelope.sender_address, message.envelope.to_addresses or message.to)
        to = targets[0] if targets else ""
        date = display_date(message)

        lines = order_product_lines(message.full_text())
        if not lines:
            self.messages_without_products += 1
            self.rows.append(OrderRow(date=date, to=to))
            return

        self.product_lines += len(lines)
        for line in lines:
            parsed = parse_order_line(line)
            self.rows.append(
                OrderRow(
                    date=date,
                    to=to,
                    jan=parsed.jan,
                    name=parsed.name,
                    qty=parsed.qty,
                    subtotal=parsed.subtotal,
                )
            )

    def add_messages(self, messages: Iterable[CandidateMessage]) -> "OrderReport":
        for message in messages:
            self.add_message(message)
        return self

    def summary(self) -> dict:
        avg = round(self.product_lines / self.matched_messages, 2) if self.matched_messages else 0.0
        return {
            "matched_messages": self.matched_messages,
            "rows": len(self.rows),
            "product_lines": self.product_lines,
            "messages_without_products": self.messages_without_products,
            "avg_lines_per_message": avg,
        }
