"""Application configuration via environment variables.

Provides type-safe settings loading using pydantic-settings.
Environment variables can be loaded from a .env file.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings

from domain.passcode.resolver import ResolverConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings are immutable once loaded; the bridge builds them once at
    startup and hands derived objects (ResolverConfig, mailbox factory) to
    the request path.

    Environment Variables:
        MAIL_PROVIDER: "gmail" or "icloud"
        HOST / PORT: Bridge bind address
        SUBJECT_KEYWORD: Substring every passcode subject contains
        LAST_MINUTES: Freshness window for passcodes
        QUERY_MINUTES: Lookback window for the mailbox search
        CODE_SCAN_LIMIT: Max candidates inspected per /code request
        ICLOUD_USER / ICLOUD_APP_PASSWORD: IMAP credentials (app-specific password)
        TOKEN_FILE / CRE_FILE: Gmail authorized-user token and OAuth client file
        LOG_LEVEL: Logging level (default INFO)
    """

    # Provider
    MAIL_PROVIDER: Literal["gmail", "icloud"] = "icloud"

    # Bridge server
    HOST: str = "127.0.0.1"
    PORT: int = 8787
    CORS_ORIGINS: str = "*"

    # Passcode resolution
    SUBJECT_KEYWORD: str = "ログイン用パスコード"
    LAST_MINUTES: int = 5
    QUERY_MINUTES: int = 60
    CODE_SCAN_LIMIT: int = 20

    # iCloud (IMAP)
    ICLOUD_USER: str = ""
    ICLOUD_APP_PASSWORD: str = ""
    ICLOUD_HOST: str = "imap.mail.me.com"
    ICLOUD_PORT: int = 993
    ICLOUD_SECURE: bool = True
    ICLOUD_MAILBOX: str = "INBOX"
    IMAP_REJECT_UNAUTHORIZED: bool = True
    IMAP_TIMEOUT: float = 30.0

    # Gmail (OAuth)
    TOKEN_FILE: str = "token.json"
    CRE_FILE: str = "credentials.json"

    # Reports
    DAYS_BACK: int = 7
    REPORT_MAX_MESSAGES: int = 500

    # Application
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    ENV: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"
        frozen = True

    @property
    def cors_origin_list(self) -> List[str]:
        """CORS_ORIGINS as a list; "*" or a comma-separated origin list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()] or ["*"]

    @property
    def mailbox_label(self) -> str:
        """Human-readable mailbox identity for /health."""
        if self.MAIL_PROVIDER == "gmail":
            return "me"
        return self.ICLOUD_MAILBOX

    def resolver_config(self) -> ResolverConfig:
        """Build the immutable resolver configuration.

        Raises:
            ValueError: If the windows or scan limit are not positive, or the
                query window is shorter than the freshness window
        """
        return ResolverConfig(
            subject_keyword=self.SUBJECT_KEYWORD,
            last_minutes=self.LAST_MINUTES,
            query_minutes=self.QUERY_MINUTES,
            scan_limit=self.CODE_SCAN_LIMIT,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache for singleton behavior.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
