"""Uniform message types produced by mailbox adapters.

Adapters hide backend quirks (Gmail header lists, IMAP ENVELOPE structures)
and hand the domain these two value types. Addresses are always lower-cased
bare addresses without display names.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from .text import html_to_text


@dataclass(frozen=True)
class MessageEnvelope:
    """Message metadata available without downloading the body.

    Attributes:
        message_id: Backend identifier (Gmail message id or IMAP UID as str)
        subject: Decoded subject line
        sender: From header in display form ("Name <addr>")
        sender_address: Bare sender address
        recipients: To header in display form (first recipient)
        to_addresses: Bare To addresses reported by the backend
        received_at: Receipt time (UTC), None when the backend has none
    """

    message_id: str
    subject: str = ""
    sender: str = ""
    sender_address: str = ""
    recipients: str = ""
    to_addresses: Tuple[str, ...] = ()
    received_at: Optional[datetime] = None


@dataclass(frozen=True)
class CandidateMessage:
    """Fully fetched message: envelope, recipient header sources and body."""

    envelope: MessageEnvelope
    to: Tuple[str, ...] = ()
    cc: Tuple[str, ...] = ()
    bcc: Tuple[str, ...] = ()
    delivered_to: Tuple[str, ...] = ()
    x_original_to: Tuple[str, ...] = ()
    date_header: str = ""
    snippet: str = ""
    text_body: str = ""
    html_body: str = ""

    @property
    def message_id(self) -> str:
        return self.envelope.message_id

    @property
    def subject(self) -> str:
        return self.envelope.subject

    @property
    def received_at(self) -> Optional[datetime]:
        return self.envelope.received_at

    def text_sources(self) -> List[Tuple[str, str]]:
        """Body texts to search, in priority order, as (label, text) pairs."""
        sources = []
        if self.snippet:
            sources.append(("snippet", self.snippet))
        if self.text_body:
            sources.append(("text", self.text_body))
        if self.html_body:
            sources.append(("html", html_to_text(self.html_body)))
        return sources

    def full_text(self) -> str:
        """Plain body, falling back to the HTML body rendered as text."""
        return self.text_body or html_to_text(self.html_body)
