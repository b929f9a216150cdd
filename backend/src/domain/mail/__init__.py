"""Mail domain: uniform message types, the mailbox port and error taxonomy."""

from .errors import ConfigurationError, MailboxError, MailBridgeError
from .models import CandidateMessage, MessageEnvelope
from .ports import MailboxFactory, MailboxPort

__all__ = [
    "CandidateMessage",
    "ConfigurationError",
    "MailboxError",
    "MailboxFactory",
    "MailboxPort",
    "MailBridgeError",
    "MessageEnvelope",
]
