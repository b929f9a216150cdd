"""Build a mailbox factory from Settings.

Credentials are validated here, once, so a misconfigured process fails at
startup instead of on the first request. The returned factory creates a new,
unopened mailbox per call.
"""

import logging
from functools import partial
from typing import Optional

from config import Settings
from domain.mail.errors import ConfigurationError
from domain.mail.ports import MailboxFactory

from .gmail_mailbox import GmailMailbox, load_credentials
from .imap_mailbox import ImapMailbox

logger = logging.getLogger(__name__)

PROVIDERS = ("gmail", "icloud")


def build_mailbox_factory(settings: Settings, provider: Optional[str] = None) -> MailboxFactory:
    """Return a zero-argument callable producing mailbox sessions.

    Args:
        settings: Application settings
        provider: Override for settings.MAIL_PROVIDER

    Raises:
        ConfigurationError: Unknown provider or missing/invalid credentials
    """
    provider = (provider or settings.MAIL_PROVIDER).lower()

    if provider == "icloud":
        if not settings.ICLOUD_USER or not settings.ICLOUD_APP_PASSWORD:
            raise ConfigurationError("Missing ICLOUD_USER or ICLOUD_APP_PASSWORD")
        if not settings.IMAP_REJECT_UNAUTHORIZED:
            logger.warning("IMAP TLS certificate verification is disabled")
        logger.info(
            f"Using IMAP mailbox {settings.ICLOUD_HOST}:{settings.ICLOUD_PORT}",
            extra={"folder": settings.ICLOUD_MAILBOX},
        )
        return partial(
            ImapMailbox,
            host=settings.ICLOUD_HOST,
            port=settings.ICLOUD_PORT,
            username=settings.ICLOUD_USER,
            password=settings.ICLOUD_APP_PASSWORD,
            folder=settings.ICLOUD_MAILBOX,
            secure=settings.ICLOUD_SECURE,
            verify_tls=settings.IMAP_REJECT_UNAUTHORIZED,
            timeout=settings.IMAP_TIMEOUT,
        )

    if provider == "gmail":
        # Fail fast; each session reloads the token file for itself
        load_credentials(settings.TOKEN_FILE, settings.CRE_FILE)
        logger.info("Using Gmail mailbox", extra={"token_file": settings.TOKEN_FILE})
        loader = partial(load_credentials, settings.TOKEN_FILE, settings.CRE_FILE)
        return partial(GmailMailbox, credentials_loader=loader)

    raise ConfigurationError(f"Unknown mail provider: {provider} (expected one of {', '.join(PROVIDERS)})")
