"""IMAP adapter (iCloud by default) built on imapclient.

The folder is always selected read-only and bodies are fetched with
BODY.PEEK[], so the \\Seen flag is never touched. IMAP SEARCH is used only
for the day-granular SINCE bound; subjects are filtered by the caller.
"""

import logging
import ssl
from datetime import datetime
from typing import List, Optional, Sequence

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from domain.mail.addresses import format_address
from domain.mail.clock import ensure_utc
from domain.mail.errors import MailboxError
from domain.mail.models import CandidateMessage, MessageEnvelope
from domain.mail.ports import MailboxPort

from .mime_parser import build_candidate, decode_header_value

logger = logging.getLogger(__name__)


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def envelope_address(address) -> str:
    """Bare lower-cased address from an imapclient Address (mailbox@host)."""
    mailbox = _text(getattr(address, "mailbox", None)).strip()
    host = _text(getattr(address, "host", None)).strip()
    if not mailbox or not host:
        return ""
    return f"{mailbox}@{host}".lower()


def envelope_addresses(addresses) -> tuple:
    result = []
    for address in addresses or ():
        addr = envelope_address(address)
        if addr and addr not in result:
            result.append(addr)
    return tuple(result)


def envelope_display(addresses) -> str:
    """Display form of the first address: 'Name <addr>'."""
    for address in addresses or ():
        addr = envelope_address(address)
        name = decode_header_value(getattr(address, "name", None))
        if addr or name:
            return format_address(name, addr)
    return ""


class ImapMailbox(MailboxPort):
    """Read-only IMAP session over one folder.

    Args:
        host: IMAP server host
        port: IMAP server port
        username: Login user
        password: Login password (iCloud app-specific password)
        folder: Folder to select read-only
        secure: Use implicit TLS
        verify_tls: Verify the server certificate
        timeout: Socket timeout in seconds
        provider: Label reported in logs and metrics
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        folder: str = "INBOX",
        secure: bool = True,
        verify_tls: bool = True,
        timeout: float = 30.0,
        provider: str = "icloud",
        client_class=IMAPClient,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.folder = folder
        self.secure = secure
        self.verify_tls = verify_tls
        self.timeout = timeout
        self.provider = provider
        self.client_class = client_class
        self._client = None

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        if not self.secure:
            return None
        context = ssl.create_default_context()
        if not self.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def open(self) -> None:
        try:
            client = self.client_class(
                self.host,
                port=self.port,
                ssl=self.secure,
                ssl_context=self._ssl_context(),
                timeout=self.timeout,
            )
        except (IMAPClientError, OSError) as e:
            raise MailboxError(f"IMAP connect to {self.host}:{self.port} failed: {e}")

        # Aware datetimes for INTERNALDATE
        client.normalise_times = False
        self._client = client
        try:
            client.login(self.username, self.password)
            client.select_folder(self.folder, readonly=True)
        except (IMAPClientError, OSError) as e:
            self.close()
            raise MailboxError(f"IMAP login/select failed: {e}")

        logger.debug(f"IMAP session opened on {self.host}", extra={"folder": self.folder})

    def close(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.logout()
        except (IMAPClientError, OSError) as e:
            logger.debug(f"IMAP logout failed: {e}")

    @property
    def client(self):
        if self._client is None:
            self.open()
        return self._client

    def search(
        self,
        since: datetime,
        subjects: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[MessageEnvelope]:
        try:
            uids = self.client.search(["SINCE", ensure_utc(since).date()])
            uids = sorted(uids, reverse=True)
            if limit is not None:
                uids = uids[:limit]
            if not uids:
                return []
            data = self.client.fetch(uids, ["ENVELOPE", "INTERNALDATE"])
        except (IMAPClientError, OSError) as e:
            raise MailboxError(f"IMAP search failed: {e}")

        envelopes = [self._to_envelope(uid, data[uid]) for uid in uids if uid in data]
        # Newest first by receipt time; undated messages go last
        envelopes.sort(
            key=lambda e: (e.received_at is not None, e.received_at or datetime.min),
            reverse=True,
        )
        return envelopes

    def fetch_message(self, envelope: MessageEnvelope) -> CandidateMessage:
        uid = int(envelope.message_id)
        try:
            data = self.client.fetch([uid], ["BODY.PEEK[]"])
        except (IMAPClientError, OSError) as e:
            raise MailboxError(f"IMAP fetch failed for uid {uid}: {e}")

        raw = (data.get(uid) or {}).get(b"BODY[]")
        if raw is None:
            raise MailboxError(f"IMAP message {uid} has no body")
        try:
            return build_candidate(envelope, raw)
        except ValueError as e:
            raise MailboxError(f"IMAP message {uid} unparsable: {e}")

    @staticmethod
    def _to_envelope(uid: int, item: dict) -> MessageEnvelope:
        env = item.get(b"ENVELOPE")
        internal = item.get(b"INTERNALDATE")
        received_at = ensure_utc(internal) if isinstance(internal, datetime) else None
        if env is None:
            return MessageEnvelope(message_id=str(uid), received_at=received_at)

        from_ = env.from_ or ()
        senders = envelope_addresses(from_)
        return MessageEnvelope(
            message_id=str(uid),
            subject=decode_header_value(env.subject),
            sender=envelope_display(from_),
            sender_address=senders[0] if senders else "",
            recipients=envelope_display(env.to),
            to_addresses=envelope_addresses(env.to),
            received_at=received_at,
        )
