"""Batch report runner.

Scans a mailbox for the storefront's lottery, order and shipping mails over
the last N days, builds the report rows and writes them to CSV or Excel.
Subjects are narrowed on the backend where supported and always re-checked
here.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Sequence

from domain.mail.clock import utc_now
from domain.mail.ports import MailboxFactory, MailboxPort
from domain.reports.lottery import LOTTERY_COLUMNS, WIN_KEYWORDS, LotteryTally
from domain.reports.orders import ORDER_COLUMNS, ORDER_SUBJECT, OrderReport
from domain.reports.shipping import SHIPPING_COLUMNS, SHIPPING_SUBJECT, ShippingReport
from infrastructure.exporters import write_csv, write_xlsx
from observability.metrics import report_rows_total

logger = logging.getLogger(__name__)

REPORTS = ("lottery", "orders", "shipping")
FORMATS = ("csv", "xlsx")

COLUMNS = {
    "lottery": LOTTERY_COLUMNS,
    "orders": ORDER_COLUMNS,
    "shipping": SHIPPING_COLUMNS,
}
HYPERLINK_KEYS = {"shipping": ("tracking_url",)}
WRAP_KEYS = {"orders": ("name",), "shipping": ("product_name", "address")}


@dataclass
class ReportResult:
    """Rows and summary of one report run."""

    report: str
    provider: str
    rows: List[Any] = field(default_factory=list)
    summary: dict = field(default_factory=dict)
    scanned: int = 0

    @property
    def columns(self):
        return COLUMNS[self.report]


def default_output_path(provider: str, report: str, fmt: str) -> str:
    return f"{provider}_{report}.{fmt}"


class ReportRunner:
    """Run one report against a mailbox.

    Example:
        runner = ReportRunner(factory, provider="gmail", days=7)
        result = runner.run("orders")
        export_report(result, "gmail_orders.xlsx", fmt="xlsx")
    """

    def __init__(
        self,
        mailbox_factory: MailboxFactory,
        provider: str,
        days: int = 7,
        max_messages: int = 500,
        clock: Callable[[], datetime] = utc_now,
    ):
        if days <= 0 or max_messages <= 0:
            raise ValueError("days and max_messages must be positive")
        self.mailbox_factory = mailbox_factory
        self.provider = provider
        self.days = days
        self.max_messages = max_messages
        self.clock = clock

    @property
    def since(self) -> datetime:
        return self.clock() - timedelta(days=self.days)

    def run(self, report: str, win_keywords: Sequence[str] = ()) -> ReportResult:
        """Run a report by name ("lottery", "orders" or "shipping").

        Raises:
            ValueError: Unknown report name
            MailboxError: Backend failure
        """
        if report == "lottery":
            result = self.lottery(win_keywords)
        elif report == "orders":
            result = self.orders()
        elif report == "shipping":
            result = self.shipping()
        else:
            raise ValueError(f"Unknown report: {report}")

        logger.info(
            f"Report {report} complete: {len(result.rows)} rows from {result.scanned} messages",
            extra={"report": report, "provider": self.provider, **result.summary},
        )
        return result

    def lottery(self, win_keywords: Sequence[str] = ()) -> ReportResult:
        keywords = tuple(WIN_KEYWORDS) + tuple(k for k in win_keywords if k and k not in WIN_KEYWORDS)
        tally = LotteryTally(win_keywords=keywords)
        with self.mailbox_factory() as mailbox:
            envelopes = mailbox.search(self.since, subjects=tally.subjects)
        matched = [e for e in envelopes if tally.classify(e.subject) is not None]
        tally.add_all(matched[: self.max_messages])
        return ReportResult(
            report="lottery",
            provider=self.provider,
            rows=tally.rows(),
            summary=tally.summary(),
            scanned=len(envelopes),
        )

    def orders(self) -> ReportResult:
        report = OrderReport()
        with self.mailbox_factory() as mailbox:
            scanned, messages = self._matching_messages(mailbox, ORDER_SUBJECT)
            report.add_messages(messages)
        summary = report.summary()
        summary["hit_rate"] = round(report.matched_messages / scanned, 4) if scanned else 0.0
        return ReportResult(report="orders", provider=self.provider, rows=report.rows, summary=summary, scanned=scanned)

    def shipping(self) -> ReportResult:
        report = ShippingReport()
        with self.mailbox_factory() as mailbox:
            scanned, messages = self._matching_messages(mailbox, SHIPPING_SUBJECT)
            report.add_messages(messages)
        return ReportResult(
            report="shipping",
            provider=self.provider,
            rows=report.rows,
            summary=report.summary(),
            scanned=scanned,
        )

    def _matching_messages(self, mailbox: MailboxPort, subject: str):
        """Search, keep the newest ``max_messages`` envelopes whose subject
        contains ``subject``, fetch them.

        The search is unbounded and the cap applies after the subject check;
        IMAP ignores ``subjects`` and returns every message in the window.
        """
        envelopes = mailbox.search(self.since, subjects=[subject])
        matched = [e for e in envelopes if subject in (e.subject or "")][: self.max_messages]
        logger.info(
            f"{len(matched)} of {len(envelopes)} messages match '{subject}'",
            extra={"provider": self.provider},
        )
        return len(envelopes), [mailbox.fetch_message(e) for e in matched]


def export_report(
    result: ReportResult,
    path: Optional[str] = None,
    fmt: str = "csv",
    delimiter: str = ",",
) -> str:
    """Write report rows to ``path`` (default ``<provider>_<report>.<fmt>``).

    Returns:
        The path written
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format: {fmt}")
    path = path or default_output_path(result.provider, result.report, fmt)

    if fmt == "xlsx":
        count = write_xlsx(
            path,
            result.columns,
            result.rows,
            sheet_title=result.report,
            hyperlink_keys=HYPERLINK_KEYS.get(result.report, ()),
            wrap_keys=WRAP_KEYS.get(result.report, ()),
        )
    else:
        count = write_csv(path, result.columns, result.rows, delimiter=delimiter)

    report_rows_total.labels(report=result.report).inc(count)
    logger.info(f"Wrote {count} rows to {os.path.abspath(path)}", extra={"report": result.report})
    return path
