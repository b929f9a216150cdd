"""MIME parsing for fetched messages.

Turns raw RFC 822 bytes (IMAP BODY[] or Gmail format=raw) into the uniform
CandidateMessage: recipient header sources plus text/plain and text/html
bodies. Attachments are ignored.
"""

import email
import email.policy
import logging
from email.header import decode_header, make_header
from email.message import Message
from typing import Tuple

from domain.mail.addresses import parse_addresses
from domain.mail.models import CandidateMessage, MessageEnvelope

logger = logging.getLogger(__name__)


def parse_mime_message(raw_mime: bytes) -> Message:
    """Parse raw MIME bytes into an email.message.EmailMessage.

    Args:
        raw_mime: Raw MIME message bytes

    Returns:
        email.message.EmailMessage: Parsed MIME message

    Raises:
        ValueError: If MIME parsing fails
    """
    try:
        return email.message_from_bytes(raw_mime, policy=email.policy.default)
    except Exception as e:
        logger.error(f"Failed to parse MIME message: {e}")
        raise ValueError(f"Invalid MIME message: {e}")


def decode_header_value(value) -> str:
    """Decode an RFC 2047 encoded header (bytes or str) into text."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    try:
        return str(make_header(decode_header(value))).strip()
    except Exception:
        logger.debug(f"Undecodable header kept as-is: {value!r}")
        return str(value).strip()


def header_addresses(msg: Message, name: str) -> Tuple[str, ...]:
    values = msg.get_all(name) or []
    return parse_addresses([str(v) for v in values])


def _part_text(part: Message) -> str:
    try:
        content = part.get_content()
        if isinstance(content, str):
            return content
    except (LookupError, UnicodeDecodeError, KeyError):
        pass
    payload = part.get_payload(decode=True) or b""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def extract_bodies(msg: Message) -> Tuple[str, str]:
    """Collect text/plain and text/html bodies, skipping attachments.

    Multiple parts of the same type are joined with newlines.

    Returns:
        (plain_text, html_text)
    """
    plain, html = [], []
    for part in msg.walk():
        if part.get_content_maintype() == "multipart":
            continue
        disposition = (part.get("Content-Disposition") or "").lower()
        if "attachment" in disposition:
            continue
        content_type = part.get_content_type()
        if content_type == "text/plain":
            plain.append(_part_text(part))
        elif content_type == "text/html":
            html.append(_part_text(part))
    return "\n".join(plain).strip(), "\n".join(html).strip()


def build_candidate(
    envelope: MessageEnvelope,
    raw_mime: bytes,
    snippet: str = "",
) -> CandidateMessage:
    """Build a CandidateMessage from an envelope and the raw message.

    Envelope fields left empty by the backend (IMAP servers often report an
    empty To) are filled from the parsed headers.
    """
    msg = parse_mime_message(raw_mime)
    plain, html = extract_bodies(msg)

    to = header_addresses(msg, "To")
    subject = envelope.subject or decode_header_value(msg.get("Subject"))
    senders = header_addresses(msg, "From")
    if not envelope.to_addresses or not envelope.subject or not envelope.sender_address:
        envelope = MessageEnvelope(
            message_id=envelope.message_id,
            subject=subject,
            sender=envelope.sender or decode_header_value(msg.get("From")),
            sender_address=envelope.sender_address or (senders[0] if senders else ""),
            recipients=envelope.recipients or decode_header_value(msg.get("To")),
            to_addresses=envelope.to_addresses or to,
            received_at=envelope.received_at,
        )

    return CandidateMessage(
        envelope=envelope,
        to=to,
        cc=header_addresses(msg, "Cc"),
        bcc=header_addresses(msg, "Bcc"),
        delivered_to=header_addresses(msg, "Delivered-To"),
        x_original_to=header_addresses(msg, "X-Original-To"),
        date_header=decode_header_value(msg.get("Date")),
        snippet=snippet,
        text_body=plain,
        html_body=html,
    )
