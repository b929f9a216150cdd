"""Mailbox adapters: Gmail REST API and IMAP."""

from .factory import build_mailbox_factory
from .gmail_mailbox import GmailMailbox
from .imap_mailbox import ImapMailbox

__all__ = ["build_mailbox_factory", "GmailMailbox", "ImapMailbox"]
