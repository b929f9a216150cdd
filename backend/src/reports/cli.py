"""mailbridge-export command line.

Usage:
    mailbridge-export orders --provider gmail --days 30 --format xlsx
    mailbridge-export lottery --win-keyword 当せん --output results.csv

Exit codes:
    0: report written
    1: mail backend failure
    2: configuration error (missing credentials, bad arguments)
"""

import argparse
import logging
import sys
from typing import List, Optional

from config import get_settings
from domain.mail.errors import ConfigurationError, MailboxError
from infrastructure.mail.factory import PROVIDERS, build_mailbox_factory
from observability.logging_config import configure_logging

from .service import FORMATS, REPORTS, ReportRunner, export_report

logger = logging.getLogger(__name__)


def build_parser(settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mailbridge-export",
        description="Export lottery, order or shipping reports from a mailbox",
    )
    parser.add_argument("report", choices=REPORTS, help="Report to build")
    parser.add_argument(
        "--provider",
        choices=PROVIDERS,
        default=settings.MAIL_PROVIDER,
        help="Mail backend (default: MAIL_PROVIDER)",
    )
    parser.add_argument("--days", type=int, default=settings.DAYS_BACK, help="Days to look back")
    parser.add_argument(
        "--max-messages",
        type=int,
        default=settings.REPORT_MAX_MESSAGES,
        help="Max matching messages to include (newest first)",
    )
    parser.add_argument("--format", choices=FORMATS, default="csv", dest="fmt", help="Output format")
    parser.add_argument("--output", help="Output path (default: <provider>_<report>.<format>)")
    parser.add_argument("--delimiter", default=",", help="CSV delimiter")
    parser.add_argument(
        "--win-keyword",
        action="append",
        default=[],
        help="Extra lottery win keyword (repeatable)",
    )
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)

    configure_logging(level=args.log_level, json_format=False)

    if args.days <= 0 or args.max_messages <= 0:
        logger.error("--days and --max-messages must be positive")
        return 2
    if args.fmt == "csv" and len(args.delimiter) != 1:
        logger.error("--delimiter must be a single character")
        return 2

    try:
        factory = build_mailbox_factory(settings, provider=args.provider)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    runner = ReportRunner(factory, provider=args.provider, days=args.days, max_messages=args.max_messages)
    try:
        result = runner.run(args.report, win_keywords=args.win_keyword)
    except MailboxError as e:
        logger.error(f"Mailbox error: {e}", exc_info=True)
        return 1

    path = export_report(result, args.output, fmt=args.fmt, delimiter=args.delimiter)
    for key, value in result.summary.items():
        logger.info(f"{key}: {value}")
    print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
