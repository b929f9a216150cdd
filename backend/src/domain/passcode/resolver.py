"""Passcode Resolver.

Finds the newest one-time passcode mail that is fresher than both the caller's
watermark and a fixed trailing window, addressed to the requested recipient.

Eligibility of a candidate (checked in this order):
    1. receipt time known and >= max(watermark, now - last_minutes)
    2. subject contains the configured keyword
    3. recipient filter (if any) present in the union of recipient sources;
       an empty union is rejected
    4. a six-digit code can be extracted from the body

The first eligible candidate wins. The resolver never mutates the mailbox and
opens a fresh mailbox session per call.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from domain.mail.clock import ensure_utc, to_iso, utc_now
from domain.mail.models import CandidateMessage, MessageEnvelope
from domain.mail.ports import MailboxFactory

from .extraction import DEFAULT_MATCHERS, PasscodeMatcher, match_passcode
from .recipients import RECIPIENT_EXTRACTORS, RecipientExtractor, normalize_recipient, verify_recipient

logger = logging.getLogger(__name__)

RECENT_MAX_LIMIT = 50


@dataclass(frozen=True)
class ResolverConfig:
    """Immutable resolver settings, built once from Settings at startup.

    Attributes:
        subject_keyword: Substring every passcode subject contains
        last_minutes: Freshness window; older messages are never eligible
        query_minutes: Lookback used for the backend search (>= last_minutes)
        scan_limit: Max candidates inspected per resolution
    """

    subject_keyword: str
    last_minutes: int = 5
    query_minutes: int = 60
    scan_limit: int = 20

    def __post_init__(self):
        if not self.subject_keyword:
            raise ValueError("subject_keyword must not be empty")
        if self.last_minutes <= 0 or self.query_minutes <= 0 or self.scan_limit <= 0:
            raise ValueError("window sizes and scan limit must be positive")
        if self.query_minutes < self.last_minutes:
            raise ValueError("query_minutes must be at least last_minutes")


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of one resolution. Not-found is a normal result, not an error."""

    found: bool
    code: Optional[str] = None
    reason: Optional[str] = None
    where: Optional[str] = None
    received_at: Optional[datetime] = None
    min_time: Optional[datetime] = None
    scanned: int = 0


class PasscodeResolver:
    """Resolve the freshest passcode for a recipient.

    Example:
        resolver = PasscodeResolver(mailbox_factory, ResolverConfig("ログイン用パスコード"))
        result = resolver.resolve("me@icloud.com", watermark=started_at)
        if result.found:
            print(result.code)
    """

    def __init__(
        self,
        mailbox_factory: MailboxFactory,
        config: ResolverConfig,
        clock: Callable[[], datetime] = utc_now,
        matchers: Sequence[PasscodeMatcher] = DEFAULT_MATCHERS,
        recipient_extractors: Sequence[RecipientExtractor] = RECIPIENT_EXTRACTORS,
    ):
        self.mailbox_factory = mailbox_factory
        self.config = config
        self.clock = clock
        self.matchers = tuple(matchers)
        self.recipient_extractors = tuple(recipient_extractors)

    def min_acceptable_time(self, watermark: Optional[datetime], now: datetime) -> datetime:
        """max(watermark, now - last_minutes), with a future watermark clamped to now."""
        window_start = now - timedelta(minutes=self.config.last_minutes)
        if watermark is None:
            return window_start

        watermark = ensure_utc(watermark)
        if watermark > now:
            logger.warning(
                "Watermark is in the future, clamping to now",
                extra={"watermark": to_iso(watermark), "now": to_iso(now)},
            )
            watermark = now
        return max(watermark, window_start)

    def resolve(
        self,
        recipient_filter: Optional[str] = None,
        watermark: Optional[datetime] = None,
    ) -> ResolveResult:
        """Find the newest eligible passcode.

        Args:
            recipient_filter: Address the passcode mail must be sent to
            watermark: Caller's "not older than" bound (usually when it
                started waiting)

        Returns:
            ResolveResult with found/code, or found=False and a reason

        Raises:
            MailboxError: On backend access failure (never retried here)
        """
        now = ensure_utc(self.clock())
        wanted = normalize_recipient(recipient_filter)
        min_time = self.min_acceptable_time(watermark, now)
        since = now - timedelta(minutes=self.config.query_minutes)

        with self.mailbox_factory() as mailbox:
            envelopes = mailbox.search(
                since,
                subjects=[self.config.subject_keyword],
                limit=self.config.scan_limit,
            )
            if not envelopes:
                return ResolveResult(found=False, reason="no_messages", min_time=min_time)

            candidates = envelopes[: self.config.scan_limit]
            logger.info(
                "scan_start",
                extra={
                    "want": wanted or "(none)",
                    "candidates": len(candidates),
                    "min_time": to_iso(min_time),
                },
            )

            scanned = 0
            for envelope in candidates:
                scanned += 1
                skip_reason = self._screen_envelope(envelope, min_time)
                if skip_reason:
                    logger.debug(skip_reason, extra={"message_id": envelope.message_id})
                    continue

                message = mailbox.fetch_message(envelope)

                if wanted:
                    verdict = verify_recipient(message, wanted, self.recipient_extractors)
                    if not verdict.accepted:
                        logger.debug(
                            verdict.check.value,
                            extra={"message_id": envelope.message_id, "pool": sorted(verdict.pool)},
                        )
                        continue

                hit = self._extract_code(message)
                if hit:
                    code, where = hit
                    logger.info("code_found", extra={"message_id": envelope.message_id, "where": where})
                    return ResolveResult(
                        found=True,
                        code=code,
                        where=where,
                        received_at=envelope.received_at,
                        min_time=min_time,
                        scanned=scanned,
                    )
                logger.debug("no_code_in_message", extra={"message_id": envelope.message_id})

        return ResolveResult(
            found=False,
            reason=f"no_code_after_{to_iso(min_time)}",
            min_time=min_time,
            scanned=scanned,
        )

    def list_recent(self, limit: int = 10) -> List[MessageEnvelope]:
        """Newest subject-matching envelopes inside the query window.

        The limit is clamped to 1..50; up to min(max(limit * 5, 20), 300)
        newest messages are scanned because subjects are filtered locally.
        """
        limit = max(1, min(int(limit), RECENT_MAX_LIMIT))
        scan = min(max(limit * 5, 20), 300)
        since = ensure_utc(self.clock()) - timedelta(minutes=self.config.query_minutes)

        with self.mailbox_factory() as mailbox:
            envelopes = mailbox.search(since, subjects=(), limit=scan)

        recent = []
        for envelope in envelopes[:scan]:
            if not self._subject_matches(envelope.subject):
                continue
            recent.append(envelope)
            if len(recent) >= limit:
                break
        return recent

    def _subject_matches(self, subject: Optional[str]) -> bool:
        return self.config.subject_keyword in (subject or "").strip()

    def _screen_envelope(self, envelope: MessageEnvelope, min_time: datetime) -> Optional[str]:
        """Return a skip reason for cheap envelope-level checks, or None."""
        if envelope.received_at is None:
            return "no_timestamp"
        if ensure_utc(envelope.received_at) < min_time:
            return "too_old"
        if not self._subject_matches(envelope.subject):
            return "subject_mismatch"
        return None

    def _extract_code(self, message: CandidateMessage) -> Optional[tuple]:
        for where, text in message.text_sources():
            found = match_passcode(text, self.matchers)
            if found:
                return found.code, where
        return None
