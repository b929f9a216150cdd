"""Exception taxonomy for mailbox access.

ConfigurationError is fatal at startup. MailboxError is a per-request backend
failure that callers surface as-is and never retry.
"""


class MailBridgeError(Exception):
    """Base exception for mailbridge."""
    pass


class ConfigurationError(MailBridgeError):
    """Missing or unusable credentials/settings. The process must not serve."""
    pass


class MailboxError(MailBridgeError):
    """Backend access failure (network, auth, protocol)."""
    pass
