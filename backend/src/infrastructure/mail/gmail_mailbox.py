"""Gmail REST adapter.

Uses an authorized-user token file left behind by the OAuth consent flow and
the OAuth client file (``installed`` or ``web`` key). The token is refreshed
when expired but never written back; the consent flow itself is out of scope.

Envelopes come from ``users.messages.get(format="metadata")``; full messages
from ``format="raw"`` parsed by the shared MIME parser.
"""

import base64
import html
import json
import logging
import os
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from domain.mail.addresses import parse_addresses
from domain.mail.clock import ensure_utc, from_epoch_ms
from domain.mail.errors import ConfigurationError, MailboxError
from domain.mail.models import CandidateMessage, MessageEnvelope
from domain.mail.ports import MailboxPort

from .mime_parser import build_candidate, decode_header_value

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
METADATA_HEADERS = ["Subject", "From", "To", "Delivered-To", "X-Original-To", "Date"]
PAGE_SIZE = 500


def load_client_config(client_file: str) -> dict:
    """Read the OAuth client file and return its ``installed``/``web`` section.

    Raises:
        ConfigurationError: If the file is missing, unreadable or has neither key
    """
    if not os.path.isfile(client_file):
        raise ConfigurationError(f"Gmail client file not found: {client_file}")
    try:
        with open(client_file, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Gmail client file unreadable: {client_file}: {e}")

    key = raw.get("installed") or raw.get("web") if isinstance(raw, dict) else None
    if not key:
        raise ConfigurationError("Invalid credentials file (missing installed/web)")
    return key


def load_credentials(token_file: str, client_file: str) -> Credentials:
    """Load authorized-user credentials for the read-only Gmail scope.

    Raises:
        ConfigurationError: If the token or client file is missing or invalid
    """
    load_client_config(client_file)
    if not os.path.isfile(token_file):
        raise ConfigurationError(
            f"Gmail token file not found: {token_file}. Run the OAuth consent flow first."
        )
    try:
        return Credentials.from_authorized_user_file(token_file, SCOPES)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Gmail token file invalid: {token_file}: {e}")


def build_query(since: datetime, subjects: Sequence[str] = ()) -> str:
    """Gmail search query: ``after:<epoch seconds>`` plus OR-ed subject terms.

    2025-01-01T00:00Z with ["当選"] gives 'after:1735689600 subject:("当選")'.
    """
    parts = [f"after:{int(ensure_utc(since).timestamp())}"]
    terms = [f'subject:("{s}")' for s in subjects if s]
    if len(terms) == 1:
        parts.append(terms[0])
    elif terms:
        parts.append("{" + " ".join(terms) + "}")
    return " ".join(parts)


def _header_map(payload: dict) -> Dict[str, List[str]]:
    headers: Dict[str, List[str]] = {}
    for header in payload.get("headers", []) or []:
        name = (header.get("name") or "").lower()
        headers.setdefault(name, []).append(header.get("value") or "")
    return headers


class GmailMailbox(MailboxPort):
    """Read-only Gmail mailbox for the ``me`` user.

    Args:
        credentials_loader: Returns fresh Credentials for this session
        service_builder: Builds the Gmail API resource (injectable for tests)
    """

    provider = "gmail"

    def __init__(
        self,
        credentials_loader: Callable[[], Credentials],
        service_builder: Optional[Callable[[Credentials], object]] = None,
        user_id: str = "me",
    ):
        self.credentials_loader = credentials_loader
        self.service_builder = service_builder or self._build_service
        self.user_id = user_id
        self._service = None

    @staticmethod
    def _build_service(creds: Credentials):
        return build("gmail", "v1", credentials=creds, cache_discovery=False)

    def open(self) -> None:
        # Credentials are reloaded per session; losing them now is a request failure
        try:
            creds = self.credentials_loader()
        except ConfigurationError as e:
            raise MailboxError(f"Gmail credentials unavailable: {e}")
        if creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except GoogleAuthError as e:
                raise MailboxError(f"Gmail token refresh failed: {e}")
        self._service = self.service_builder(creds)

    def close(self) -> None:
        self._service = None

    @property
    def service(self):
        if self._service is None:
            self.open()
        return self._service

    def search(
        self,
        since: datetime,
        subjects: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[MessageEnvelope]:
        query = build_query(since, subjects)
        ids = self._list_ids(query, limit)
        logger.debug(f"Gmail search returned {len(ids)} ids", extra={"query": query})
        return [self._get_envelope(message_id) for message_id in ids]

    def fetch_message(self, envelope: MessageEnvelope) -> CandidateMessage:
        try:
            res = (
                self.service.users()
                .messages()
                .get(userId=self.user_id, id=envelope.message_id, format="raw")
                .execute()
            )
        except (HttpError, GoogleAuthError, OSError) as e:
            raise MailboxError(f"Gmail get failed for {envelope.message_id}: {e}")

        raw = res.get("raw") or ""
        raw_bytes = base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4))
        snippet = html.unescape(res.get("snippet") or "")
        try:
            return build_candidate(envelope, raw_bytes, snippet=snippet)
        except ValueError as e:
            raise MailboxError(f"Gmail message {envelope.message_id} unparsable: {e}")

    def _list_ids(self, query: str, limit: Optional[int]) -> List[str]:
        ids: List[str] = []
        page_token = None
        while True:
            page_size = PAGE_SIZE if limit is None else max(1, min(PAGE_SIZE, limit - len(ids)))
            try:
                res = (
                    self.service.users()
                    .messages()
                    .list(userId=self.user_id, q=query, maxResults=page_size, pageToken=page_token)
                    .execute()
                )
            except (HttpError, GoogleAuthError, OSError) as e:
                raise MailboxError(f"Gmail list failed: {e}")

            ids.extend(m["id"] for m in res.get("messages", []) or [])
            page_token = res.get("nextPageToken")
            if not page_token or (limit is not None and len(ids) >= limit):
                break
        return ids if limit is None else ids[:limit]

    def _get_envelope(self, message_id: str) -> MessageEnvelope:
        try:
            res = (
                self.service.users()
                .messages()
                .get(
                    userId=self.user_id,
                    id=message_id,
                    format="metadata",
                    metadataHeaders=METADATA_HEADERS,
                )
                .execute()
            )
        except (HttpError, GoogleAuthError, OSError) as e:
            raise MailboxError(f"Gmail get failed for {message_id}: {e}")

        headers = _header_map(res.get("payload") or {})
        sender = decode_header_value((headers.get("from") or [""])[0])
        to_header = decode_header_value((headers.get("to") or [""])[0])
        senders = parse_addresses(sender)
        internal_date = res.get("internalDate")

        return MessageEnvelope(
            message_id=res.get("id") or message_id,
            subject=decode_header_value((headers.get("subject") or [""])[0]),
            sender=sender,
            sender_address=senders[0] if senders else "",
            recipients=to_header,
            to_addresses=parse_addresses(headers.get("to")),
            received_at=from_epoch_ms(internal_date) if internal_date else None,
        )
