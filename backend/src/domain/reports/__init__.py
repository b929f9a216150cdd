"""Report domain: scrapers for the storefront's lottery, order and shipping mails."""

from .lottery import LOTTERY_COLUMNS, LotteryOutcome, LotteryRow, LotteryTally, classify_subject
from .orders import ORDER_COLUMNS, ORDER_SUBJECT, OrderReport, OrderRow, parse_order_line
from .shipping import SHIPPING_COLUMNS, SHIPPING_SUBJECT, ShippingReport, ShippingRow

__all__ = [
    "LOTTERY_COLUMNS",
    "LotteryOutcome",
    "LotteryRow",
    "LotteryTally",
    "classify_subject",
    "ORDER_COLUMNS",
    "ORDER_SUBJECT",
    "OrderReport",
    "OrderRow",
    "parse_order_line",
    "SHIPPING_COLUMNS",
    "SHIPPING_SUBJECT",
    "ShippingReport",
    "ShippingRow",
]
